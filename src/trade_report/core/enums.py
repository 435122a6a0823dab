"""Enumerations used across the trade report engine."""

from enum import Enum


class Platform(str, Enum):
    MT5 = "mt5"
    MT4 = "mt4"
    TRADINGVIEW = "tradingview"

    @property
    def label(self) -> str:
        mapping = {"mt5": "MT5", "mt4": "MT4", "tradingview": "TradingView"}
        return mapping[self.value]


class TradeSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class TradeState(str, Enum):
    IN = "in"  # Opening leg
    OUT = "out"  # Closing leg (carries realised profit)


class CellShape(str, Enum):
    """Content signature of a raw spreadsheet cell."""

    EMPTY = "empty"
    DATETIME = "datetime"  # "2024.01.02 10:00:00"
    DATE = "date"  # "02.01.2024"
    TIME = "time"  # "10:00:00"
    NUMBER = "number"
    TEXT = "text"


class DistributionDimension(str, Enum):
    PROFIT = "profit"
    DURATION = "duration"
    HOUR_OF_DAY = "hour_of_day"
    DAY_OF_WEEK = "day_of_week"
    MONTH = "month"


class CorrelationBand(str, Enum):
    VERY_STRONG = "very_strong"  # |r| > 0.8
    STRONG = "strong"  # |r| > 0.6
    MODERATE = "moderate"  # |r| > 0.4
    WEAK = "weak"  # |r| > 0.2
    VERY_WEAK = "very_weak"


class ReturnBasis(str, Enum):
    """Which empirical return series the Monte Carlo simulator resamples."""

    TRADE = "trade"
    MONTHLY = "monthly"
