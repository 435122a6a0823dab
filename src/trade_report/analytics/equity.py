"""Equity curve and drawdown construction.

The curve has one point per trade.  A trade carrying a ``balance`` snapshot
resets equity to that snapshot; otherwise a realised profit (closing deal
or balance operation) is added to the running equity.  Opening legs leave
equity unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Sequence

from trade_report.core.models import Trade


@dataclass
class EquityPoint:
    timestamp: datetime | None
    equity: float
    drawdown_abs: float
    drawdown_pct: float  # Fraction of the running peak (0.25 = 25%)
    peak: float


@dataclass
class EquityCurve:
    points: list[EquityPoint] = field(default_factory=list)
    initial_balance: float = 0.0
    final_equity: float = 0.0
    max_drawdown_abs: float = 0.0
    max_drawdown_pct: float = 0.0
    peak_index: int = 0
    trough_index: int = 0

    @property
    def equities(self) -> list[float]:
        return [p.equity for p in self.points]

    def __len__(self) -> int:
        return len(self.points)


def infer_initial_balance(trades: Sequence[Trade]) -> float:
    """Starting equity implied by the first balance snapshot.

    A closing trade's own profit is backed out so the first realised P&L is
    not folded into the starting equity.  Deposits and other balance rows
    anchor at their snapshot.  0 when no trade carries a balance.
    """
    for trade in trades:
        if trade.balance is None:
            continue
        balance = float(trade.balance)
        if trade.is_closed and trade.profit is not None:
            return balance - float(trade.profit)
        return balance
    return 0.0


def _realised(trade: Trade) -> float | None:
    if trade.profit is None:
        return None
    if trade.is_closed or trade.is_balance:
        return float(trade.profit)
    return None


def equity_walk(
    trades: Sequence[Trade],
    initial_balance: float,
) -> Iterator[tuple[Trade, float, float]]:
    """Yield ``(trade, equity_before, equity_after)`` for each trade in order."""
    equity = initial_balance
    for trade in trades:
        before = equity
        if trade.balance is not None:
            equity = float(trade.balance)
        else:
            pnl = _realised(trade)
            if pnl is not None:
                equity += pnl
        yield trade, before, equity


def build_equity_curve(
    trades: Sequence[Trade],
    initial_balance: float | None = None,
) -> EquityCurve:
    """Build the equity curve and maximum-drawdown episode."""
    if initial_balance is None:
        initial_balance = infer_initial_balance(trades)

    curve = EquityCurve(initial_balance=initial_balance, final_equity=initial_balance)
    if not trades:
        return curve

    peak = initial_balance
    peak_at = 0
    for idx, (trade, _before, equity) in enumerate(equity_walk(trades, initial_balance)):
        if equity >= peak:
            peak_at = idx
        peak = max(peak, equity)
        dd_abs = peak - equity
        dd_pct = dd_abs / peak if peak > 0 else 0.0
        curve.points.append(EquityPoint(
            timestamp=trade.realized_time,
            equity=equity,
            drawdown_abs=dd_abs,
            drawdown_pct=dd_pct,
            peak=peak,
        ))
        if dd_abs > curve.max_drawdown_abs:
            curve.max_drawdown_abs = dd_abs
            curve.trough_index = idx
            curve.peak_index = peak_at
        curve.max_drawdown_pct = max(curve.max_drawdown_pct, dd_pct)

    curve.final_equity = curve.points[-1].equity
    return curve
