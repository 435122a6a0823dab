"""Analytics over a parsed trade list.

Every component is a pure function (or a configuration-only object) over
the same immutable trade list; none keeps state between calls.

build_equity_curve    Running equity, peak and drawdown per trade
compute_metrics       Profit factor, win rate, Sharpe / Sortino / Calmar, ...
CorrelationAnalyzer   Pairwise daily-P&L correlation between instruments
MonteCarloSimulator   Bootstrap projection of future equity paths
DistributionBinner    Histograms by profit, duration, hour, weekday, month
monthly_returns       Calendar-month balance and return table
drawdown_periods      Significant drawdown episodes
"""

from .correlation import CorrelationAnalyzer, CorrelationPair, classify_correlation
from .distribution import DistributionBin, DistributionBinner
from .equity import EquityCurve, EquityPoint, build_equity_curve, infer_initial_balance
from .metrics import MetricsResult, compute_metrics
from .monte_carlo import MonteCarloSimulator, PercentileBand, SimulationResult
from .periods import DrawdownPeriod, MonthlyReturn, drawdown_periods, monthly_returns

__all__ = [
    "CorrelationAnalyzer",
    "CorrelationPair",
    "DistributionBin",
    "DistributionBinner",
    "DrawdownPeriod",
    "EquityCurve",
    "EquityPoint",
    "MetricsResult",
    "MonteCarloSimulator",
    "MonthlyReturn",
    "PercentileBand",
    "SimulationResult",
    "build_equity_curve",
    "classify_correlation",
    "compute_metrics",
    "drawdown_periods",
    "infer_initial_balance",
    "monthly_returns",
]
