"""Performance and risk metrics over a parsed trade list."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from trade_report.core.config import MetricsConfig
from trade_report.core.enums import TradeSide
from trade_report.core.models import Trade

from . import stats
from .equity import EquityCurve, build_equity_curve, equity_walk

logger = logging.getLogger(__name__)


@dataclass
class MetricsResult:
    """Comprehensive account performance metrics."""

    # Trade counts (closed trades only)
    total_trades: int = 0
    long_trades: int = 0
    short_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    break_even_trades: int = 0

    # Profit
    gross_profit: float = 0.0
    gross_loss: float = 0.0  # Absolute value
    total_net_profit: float = 0.0
    profit_factor: float = 0.0
    win_rate: float = 0.0  # Percent
    expectancy: float = 0.0
    expected_payoff: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0  # Negative
    largest_win: float = 0.0
    largest_loss: float = 0.0  # Negative
    win_loss_ratio: float = 0.0

    # Risk
    initial_balance: float = 0.0
    final_balance: float = 0.0
    max_drawdown_abs: float = 0.0
    max_drawdown_pct: float = 0.0  # Percent of peak
    recovery_factor: float = 0.0
    calmar_ratio: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    cagr: float = 0.0  # Percent
    var_95: float = 0.0  # Percent loss per trade

    # Return distribution (per-trade % of equity)
    returns: list[float] = field(default_factory=list)
    return_mean: float = 0.0
    return_median: float = 0.0
    return_std: float = 0.0
    return_skew: float = 0.0
    return_kurtosis: float = 0.0
    tail_ratio: float = 1.0
    autocorrelation: float = 0.0

    # Streaks
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    avg_consecutive_wins: float = 0.0
    avg_consecutive_losses: float = 0.0
    max_win_streak_amount: float = 0.0
    max_loss_streak_amount: float = 0.0  # Absolute value

    # Costs and timing
    commission_total: float = 0.0
    swap_total: float = 0.0
    avg_holding_hours: float = 0.0
    avg_holding_time: str = "0h 0m"

    def summary(self) -> dict[str, Any]:
        """Return summary dict for logging / JSON output."""
        return {
            "trades": self.total_trades,
            "net_profit": round(self.total_net_profit, 2),
            "profit_factor": round(self.profit_factor, 2),
            "win_rate": round(self.win_rate, 2),
            "expectancy": round(self.expectancy, 2),
            "max_dd": round(self.max_drawdown_abs, 2),
            "max_dd_pct": round(self.max_drawdown_pct, 2),
            "sharpe": round(self.sharpe_ratio, 4),
            "sortino": round(self.sortino_ratio, 4),
            "calmar": round(self.calmar_ratio, 4),
            "cagr": round(self.cagr, 2),
            "var_95": round(self.var_95, 4),
            "skew": round(self.return_skew, 4),
            "kurtosis": round(self.return_kurtosis, 4),
            "tail_ratio": round(self.tail_ratio, 4),
            "max_consecutive_wins": self.max_consecutive_wins,
            "max_consecutive_losses": self.max_consecutive_losses,
            "avg_holding_time": self.avg_holding_time,
        }


@dataclass
class _Streaks:
    max_wins: int = 0
    max_losses: int = 0
    avg_wins: float = 0.0
    avg_losses: float = 0.0
    max_win_amount: float = 0.0
    max_loss_amount: float = 0.0


def compute_streaks(profits: Sequence[float]) -> _Streaks:
    """Single-pass streak scan.  Break-even values neither extend nor break a run."""
    result = _Streaks()
    win_runs: list[int] = []
    loss_runs: list[int] = []
    run = 0  # >0 winning run length, <0 losing run length
    amount = 0.0

    def close_run() -> None:
        if run > 0:
            win_runs.append(run)
            if run > result.max_wins:
                result.max_wins, result.max_win_amount = run, amount
        elif run < 0:
            loss_runs.append(-run)
            if -run > result.max_losses:
                result.max_losses, result.max_loss_amount = -run, amount

    for pnl in profits:
        if pnl > 0:
            if run < 0:
                close_run()
                run, amount = 0, 0.0
            run += 1
            amount += pnl
        elif pnl < 0:
            if run > 0:
                close_run()
                run, amount = 0, 0.0
            run -= 1
            amount += abs(pnl)
    close_run()

    result.avg_wins = stats.mean(win_runs)
    result.avg_losses = stats.mean(loss_runs)
    return result


def format_duration(hours: float) -> str:
    """``"2d 3h 15m"``, or ``"3h 15m"`` under a day."""
    total_minutes = int(hours * 60)
    days, rem = divmod(total_minutes, 24 * 60)
    hh, mm = divmod(rem, 60)
    if days > 0:
        return f"{days}d {hh}h {mm}m"
    return f"{hh}h {mm}m"


def trade_returns(trades: Sequence[Trade], initial_balance: float) -> list[float]:
    """Per-trade return in percent of the equity just before the trade.

    Trades whose prior equity is not positive are skipped.
    """
    returns: list[float] = []
    for trade, before, _after in equity_walk(trades, initial_balance):
        if trade.is_closed and before > 0:
            returns.append(float(trade.profit) / before * 100.0)
    return returns


def _cagr(trades: Sequence[Trade], initial: float, final: float, net: float) -> float:
    if initial <= 0:
        return 0.0
    times = [t.realized_time for t in trades if t.time_valid and t.realized_time is not None]
    if not times:
        return 0.0
    years = (max(times) - min(times)).total_seconds() / (365.25 * 86400)
    if years <= 0:
        return net / initial * 100.0  # Simple return for sub-second spans
    if final <= 0:
        return -100.0
    return ((final / initial) ** (1.0 / years) - 1.0) * 100.0


def _ratio(numerator: float, deviation: float, cap: float) -> float:
    if deviation == 0:
        return cap if numerator > 0 else 0.0
    return numerator / deviation


def compute_metrics(
    trades: Sequence[Trade],
    curve: EquityCurve | None = None,
    config: MetricsConfig | None = None,
) -> MetricsResult:
    """Compute all metrics from the trade list and its equity curve."""
    config = config or MetricsConfig()
    if curve is None:
        curve = build_equity_curve(trades)
    result = MetricsResult(
        initial_balance=curve.initial_balance,
        final_balance=curve.final_equity,
        max_drawdown_abs=curve.max_drawdown_abs,
        max_drawdown_pct=curve.max_drawdown_pct * 100.0,
    )

    deals = [t for t in trades if not t.is_balance]
    result.commission_total = sum(float(t.commission) for t in deals)
    result.swap_total = sum(float(t.swap) for t in deals)

    closed = [t for t in trades if t.is_closed]
    if not closed:
        return result

    profits = [float(t.profit) for t in closed]
    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]

    result.total_trades = len(closed)
    result.long_trades = sum(1 for t in closed if t.side == TradeSide.LONG)
    result.short_trades = sum(1 for t in closed if t.side == TradeSide.SHORT)
    result.winning_trades = len(wins)
    result.losing_trades = len(losses)
    result.break_even_trades = len(closed) - len(wins) - len(losses)

    # Profit
    result.gross_profit = sum(wins)
    result.gross_loss = abs(sum(losses))
    result.total_net_profit = result.gross_profit - result.gross_loss
    if result.gross_loss > 0:
        result.profit_factor = result.gross_profit / result.gross_loss
    elif result.gross_profit > 0:
        result.profit_factor = config.profit_factor_cap
    result.win_rate = len(wins) / len(closed) * 100.0
    result.expectancy = result.expected_payoff = result.total_net_profit / len(closed)

    if wins:
        result.avg_win = result.gross_profit / len(wins)
        result.largest_win = max(wins)
    if losses:
        result.avg_loss = -result.gross_loss / len(losses)
        result.largest_loss = min(losses)
        result.win_loss_ratio = result.avg_win / abs(result.avg_loss)
    elif result.avg_win > 0:
        result.win_loss_ratio = config.profit_factor_cap

    # Drawdown-relative
    if curve.max_drawdown_abs > 0:
        result.recovery_factor = result.total_net_profit / curve.max_drawdown_abs
        result.calmar_ratio = result.total_net_profit / curve.max_drawdown_abs

    # Return distribution
    returns = trade_returns(trades, curve.initial_balance)
    result.returns = returns
    result.return_mean = stats.mean(returns)
    result.return_median = stats.median(returns)
    result.return_std = stats.sample_std(returns)
    result.return_skew = stats.skewness(returns)
    result.return_kurtosis = stats.excess_kurtosis(returns)
    result.tail_ratio = stats.tail_ratio(returns, config.tail_ratio_min_samples)
    result.var_95 = stats.historical_var(returns, config.var_confidence)
    result.autocorrelation = stats.autocorrelation(returns)
    result.sharpe_ratio = _ratio(result.return_mean, result.return_std, config.ratio_cap)
    result.sortino_ratio = _ratio(
        result.return_mean, stats.downside_deviation(returns), config.ratio_cap,
    )
    result.cagr = _cagr(
        trades, curve.initial_balance, curve.final_equity, result.total_net_profit,
    )

    # Streaks
    streaks = compute_streaks(profits)
    result.max_consecutive_wins = streaks.max_wins
    result.max_consecutive_losses = streaks.max_losses
    result.avg_consecutive_wins = streaks.avg_wins
    result.avg_consecutive_losses = streaks.avg_losses
    result.max_win_streak_amount = streaks.max_win_amount
    result.max_loss_streak_amount = streaks.max_loss_amount

    # Holding time
    held = [h for h in (t.holding_hours for t in closed) if h is not None]
    if held:
        result.avg_holding_hours = stats.mean(held)
        result.avg_holding_time = format_duration(result.avg_holding_hours)

    logger.debug("Metrics computed: %s", result.summary())
    return result
