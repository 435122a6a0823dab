"""Trade distribution histograms.

Buckets closed trades by profit, holding duration, hour of day, day of
week or month of year.  Every category is always present (empty bins
included) so charts keep a stable axis.

Usage::

    binner = DistributionBinner()
    bins = binner.bin(trades, DistributionDimension.DAY_OF_WEEK)
    print(bins[0].label, bins[0].win_rate)   # "Monday" 62.5
"""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from trade_report.core.config import DistributionConfig
from trade_report.core.enums import DistributionDimension
from trade_report.core.models import Trade

logger = logging.getLogger(__name__)

DAY_NAMES = list(calendar.day_name)  # Monday first, matches datetime.weekday()
MONTH_NAMES = list(calendar.month_abbr)[1:]

# (label, lower hours inclusive, upper hours exclusive)
DURATION_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("<1h", 0.0, 1.0),
    ("1-6h", 1.0, 6.0),
    ("6-12h", 6.0, 12.0),
    ("12-24h", 12.0, 24.0),
    ("1-3d", 24.0, 72.0),
    ("3-7d", 72.0, 168.0),
    (">7d", 168.0, math.inf),
)


@dataclass
class DistributionBin:
    """Accumulator and result for one bucket."""

    label: str
    lower: float | None = None
    upper: float | None = None
    count: int = 0
    wins: int = 0
    losses: int = 0
    total_profit: float = 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.count * 100.0 if self.count else 0.0

    def record(self, profit: float) -> None:
        self.count += 1
        self.total_profit += profit
        if profit > 0:
            self.wins += 1
        elif profit < 0:
            self.losses += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "lower": self.lower,
            "upper": self.upper,
            "count": self.count,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": round(self.win_rate, 2),
            "total_profit": round(self.total_profit, 2),
        }


class DistributionBinner:
    """Histogram builder for closed trades.

    Parameters
    ----------
    config : DistributionConfig | None
        ``profit_bins`` sets the number of equal-width profit bins.
    """

    def __init__(self, config: DistributionConfig | None = None) -> None:
        self._config = config or DistributionConfig()

    def bin(
        self,
        trades: Sequence[Trade],
        dimension: DistributionDimension | str,
    ) -> list[DistributionBin]:
        """Bucket closed trades along *dimension*."""
        dimension = DistributionDimension(dimension)
        closed = [t for t in trades if t.is_closed]

        if dimension == DistributionDimension.PROFIT:
            return self._by_profit(closed)
        if dimension == DistributionDimension.DURATION:
            return self._by_duration(closed)

        timed = [t for t in closed if t.time_valid and t.open_time is not None]
        if len(timed) < len(closed):
            logger.debug(
                "%s: %d trades without a valid timestamp excluded",
                dimension.value, len(closed) - len(timed),
            )
        if dimension == DistributionDimension.HOUR_OF_DAY:
            labels = [f"{h:02d}:00" for h in range(24)]
            return self._categorical(timed, labels, lambda t: t.open_time.hour)
        if dimension == DistributionDimension.DAY_OF_WEEK:
            return self._categorical(timed, DAY_NAMES, lambda t: t.open_time.weekday())
        return self._categorical(timed, MONTH_NAMES, lambda t: t.open_time.month - 1)

    def all(self, trades: Sequence[Trade]) -> dict[str, list[DistributionBin]]:
        """Every dimension at once, keyed by dimension name."""
        return {dim.value: self.bin(trades, dim) for dim in DistributionDimension}

    # ------------------------------------------------------------------ #
    # Private                                                              #
    # ------------------------------------------------------------------ #

    def _by_profit(self, closed: list[Trade]) -> list[DistributionBin]:
        n_bins = self._config.profit_bins
        if not closed:
            return []
        profits = [float(t.profit) for t in closed]
        lo, hi = min(profits), max(profits)
        width = (hi - lo) / n_bins if hi > lo else 1.0

        bins = [
            DistributionBin(
                label=f"{lo + i * width:.2f} to {lo + (i + 1) * width:.2f}",
                lower=lo + i * width,
                upper=lo + (i + 1) * width,
            )
            for i in range(n_bins)
        ]
        for p in profits:
            idx = min(n_bins - 1, int((p - lo) / width))
            bins[idx].record(p)
        return bins

    @staticmethod
    def _by_duration(closed: list[Trade]) -> list[DistributionBin]:
        bins = [
            DistributionBin(label=label, lower=lower, upper=None if math.isinf(upper) else upper)
            for label, lower, upper in DURATION_BUCKETS
        ]
        for trade in closed:
            hours = trade.holding_hours
            if hours is None:
                continue
            for b, (_label, lower, upper) in zip(bins, DURATION_BUCKETS):
                if lower <= hours < upper:
                    b.record(float(trade.profit))
                    break
        return bins

    @staticmethod
    def _categorical(
        trades: list[Trade],
        labels: list[str],
        key: Callable[[Trade], int],
    ) -> list[DistributionBin]:
        bins = [DistributionBin(label=label, lower=i, upper=i + 1) for i, label in enumerate(labels)]
        for trade in trades:
            bins[key(trade)].record(float(trade.profit))
        return bins
