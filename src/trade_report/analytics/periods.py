"""Calendar and episode views of an account: monthly returns, drawdown periods."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from trade_report.core.models import Trade

from .equity import EquityCurve, equity_walk, infer_initial_balance

logger = logging.getLogger(__name__)


@dataclass
class MonthlyReturn:
    year: int
    month: int
    start_balance: float
    end_balance: float
    profit: float  # Realised trading profit; deposits excluded
    return_pct: float
    trades: int

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass
class DrawdownPeriod:
    start: datetime | None
    end: datetime | None
    start_index: int
    end_index: int
    peak_equity: float
    max_drawdown_abs: float
    max_drawdown_pct: float  # Percent of the episode's peak
    recovered: bool


def monthly_returns(
    trades: Sequence[Trade],
    initial_balance: float | None = None,
) -> list[MonthlyReturn]:
    """Per calendar month: opening/closing balance, trading profit, % return.

    The month of a trade is its realisation time.  Rows without a valid
    timestamp stay in the month of the row before them.  ``return_pct`` is
    trading profit over the month's opening balance (0 when that is <= 0),
    so deposits and withdrawals do not count as performance.
    """
    if initial_balance is None:
        initial_balance = infer_initial_balance(trades)

    months: dict[tuple[int, int], MonthlyReturn] = {}
    key: tuple[int, int] | None = None

    for trade, before, after in equity_walk(trades, initial_balance):
        ts = trade.realized_time if trade.time_valid else None
        if ts is not None:
            key = (ts.year, ts.month)
        if key is None:
            continue
        row = months.get(key)
        if row is None:
            row = months[key] = MonthlyReturn(
                year=key[0], month=key[1],
                start_balance=before, end_balance=before,
                profit=0.0, return_pct=0.0, trades=0,
            )
        row.end_balance = after
        if trade.is_closed:
            row.profit += float(trade.profit)
            row.trades += 1

    results = [months[k] for k in sorted(months)]
    for row in results:
        row.return_pct = (
            row.profit / row.start_balance * 100 if row.start_balance > 0 else 0.0
        )
    return results


def drawdown_periods(
    curve: EquityCurve,
    min_drawdown_pct: float = 5.0,
) -> list[DrawdownPeriod]:
    """Contiguous episodes where drawdown is at least *min_drawdown_pct* percent.

    An episode ends at the first point back under the threshold; one still
    open at the end of the curve is reported with ``recovered=False``.
    """
    periods: list[DrawdownPeriod] = []
    current: DrawdownPeriod | None = None

    for idx, point in enumerate(curve.points):
        pct = point.drawdown_pct * 100
        if current is None:
            if pct >= min_drawdown_pct:
                current = DrawdownPeriod(
                    start=point.timestamp, end=point.timestamp,
                    start_index=idx, end_index=idx,
                    peak_equity=point.peak,
                    max_drawdown_abs=point.drawdown_abs,
                    max_drawdown_pct=pct,
                    recovered=False,
                )
            continue

        current.end = point.timestamp
        current.end_index = idx
        if point.drawdown_abs > current.max_drawdown_abs:
            current.max_drawdown_abs = point.drawdown_abs
            current.max_drawdown_pct = (
                point.drawdown_abs / current.peak_equity * 100
                if current.peak_equity > 0 else 0.0
            )
        if pct < min_drawdown_pct:
            current.recovered = True
            periods.append(current)
            current = None

    if current is not None:
        periods.append(current)
    logger.debug("Found %d drawdown periods >= %.1f%%", len(periods), min_drawdown_pct)
    return periods
