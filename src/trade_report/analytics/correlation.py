"""Cross-instrument correlation of daily realised P&L.

Measures how instruments co-move.  High positive correlation between two
symbols means little diversification benefit between them.

Usage::

    analyzer = CorrelationAnalyzer()
    pairs = analyzer.analyze(trades)
    print(pairs[0].symbol_a, pairs[0].symbol_b, pairs[0].coefficient)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Sequence

from trade_report.core.config import CorrelationConfig
from trade_report.core.enums import CorrelationBand
from trade_report.core.models import Trade

from .stats import pearson

logger = logging.getLogger(__name__)


@dataclass
class CorrelationPair:
    symbol_a: str
    symbol_b: str
    coefficient: float
    sample_size_a: int  # Active days of symbol_a
    sample_size_b: int
    overlap_days: int  # Days on which both traded
    band: CorrelationBand

    @property
    def direction(self) -> str:
        if self.coefficient > 0:
            return "positive"
        if self.coefficient < 0:
            return "negative"
        return "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol_a": self.symbol_a,
            "symbol_b": self.symbol_b,
            "coefficient": round(self.coefficient, 4),
            "band": self.band.value,
            "direction": self.direction,
            "sample_size_a": self.sample_size_a,
            "sample_size_b": self.sample_size_b,
            "overlap_days": self.overlap_days,
        }


def classify_correlation(r: float) -> CorrelationBand:
    """Strength band on ``|r|``; the sign carries the direction."""
    strength = abs(r)
    if strength > 0.8:
        return CorrelationBand.VERY_STRONG
    if strength > 0.6:
        return CorrelationBand.STRONG
    if strength > 0.4:
        return CorrelationBand.MODERATE
    if strength > 0.2:
        return CorrelationBand.WEAK
    return CorrelationBand.VERY_WEAK


def daily_pnl(trades: Sequence[Trade]) -> dict[str, dict[date, float]]:
    """``{symbol: {calendar date: summed profit}}`` for closed, timed trades."""
    daily: dict[str, dict[date, float]] = defaultdict(lambda: defaultdict(float))
    for trade in trades:
        if not trade.is_closed or not trade.symbol or not trade.time_valid:
            continue
        ts = trade.realized_time
        if ts is None:
            continue
        daily[trade.symbol][ts.date()] += float(trade.profit)
    return {sym: dict(days) for sym, days in daily.items()}


class CorrelationAnalyzer:
    """Pairwise Pearson correlation of per-symbol daily P&L.

    Parameters
    ----------
    config : CorrelationConfig | None
        ``min_active_days`` is the number of distinct trading days a
        symbol needs before it is paired at all (inclusive).
    """

    def __init__(self, config: CorrelationConfig | None = None) -> None:
        self._config = config or CorrelationConfig()

    def _eligible(self, daily: dict[str, dict[date, float]]) -> list[str]:
        return sorted(
            sym for sym, days in daily.items()
            if len(days) >= self._config.min_active_days
        )

    @staticmethod
    def _pair(sym_a: str, days_a: dict[date, float], sym_b: str, days_b: dict[date, float]) -> CorrelationPair:
        # Align over the union of both symbols' days; a missing day is flat.
        dates = sorted(set(days_a) | set(days_b))
        xs = [days_a.get(d, 0.0) for d in dates]
        ys = [days_b.get(d, 0.0) for d in dates]
        r = pearson(xs, ys)
        return CorrelationPair(
            symbol_a=sym_a,
            symbol_b=sym_b,
            coefficient=r,
            sample_size_a=len(days_a),
            sample_size_b=len(days_b),
            overlap_days=len(set(days_a) & set(days_b)),
            band=classify_correlation(r),
        )

    def analyze(self, trades: Sequence[Trade]) -> list[CorrelationPair]:
        """All eligible symbol pairs, strongest ``|r|`` first."""
        daily = daily_pnl(trades)
        symbols = self._eligible(daily)
        pairs: list[CorrelationPair] = []
        for i, sym_a in enumerate(symbols):
            for sym_b in symbols[i + 1:]:
                pairs.append(self._pair(sym_a, daily[sym_a], sym_b, daily[sym_b]))

        pairs.sort(key=lambda p: (-abs(p.coefficient), p.symbol_a, p.symbol_b))
        logger.debug(
            "Correlation: %d symbols eligible of %d, %d pairs",
            len(symbols), len(daily), len(pairs),
        )
        return pairs

    def matrix(self, trades: Sequence[Trade]) -> dict[str, dict[str, float]]:
        """Symmetric ``{symbol: {symbol: r}}`` over eligible symbols (diagonal 1)."""
        daily = daily_pnl(trades)
        symbols = self._eligible(daily)
        result: dict[str, dict[str, float]] = {s: {s: 1.0} for s in symbols}
        for i, sym_a in enumerate(symbols):
            for sym_b in symbols[i + 1:]:
                r = self._pair(sym_a, daily[sym_a], sym_b, daily[sym_b]).coefficient
                result[sym_a][sym_b] = r
                result[sym_b][sym_a] = r
        return result
