"""Report facade: run every analytic over one parsed trade log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from trade_report.analytics.correlation import CorrelationAnalyzer, CorrelationPair
from trade_report.analytics.distribution import DistributionBin, DistributionBinner
from trade_report.analytics.equity import EquityCurve, build_equity_curve
from trade_report.analytics.metrics import MetricsResult, compute_metrics
from trade_report.analytics.monte_carlo import MonteCarloSimulator, SimulationResult
from trade_report.analytics.periods import (
    DrawdownPeriod,
    MonthlyReturn,
    drawdown_periods,
    monthly_returns,
)
from trade_report.core.config import Settings
from trade_report.core.errors import AnalyticsError
from trade_report.core.models import ParsedReport

logger = logging.getLogger(__name__)


@dataclass
class TradeReport:
    """Everything derived from one parsed report."""

    parsed: ParsedReport
    curve: EquityCurve
    metrics: MetricsResult
    correlations: list[CorrelationPair] = field(default_factory=list)
    distributions: dict[str, list[DistributionBin]] = field(default_factory=dict)
    monthly: list[MonthlyReturn] = field(default_factory=list)
    drawdowns: list[DrawdownPeriod] = field(default_factory=list)
    simulation: SimulationResult | None = None

    def summary(self) -> dict[str, Any]:
        """Compact JSON-able view."""
        return {
            "source": self.parsed.platform.label,
            "strategy": self.parsed.strategy,
            "trades": len(self.parsed.trades),
            "issues": len(self.parsed.issues),
            "skipped_rows": self.parsed.skipped_rows,
            "invalid_time_rows": self.parsed.invalid_time_rows,
            "initial_balance": round(self.curve.initial_balance, 2),
            "final_equity": round(self.curve.final_equity, 2),
            "metrics": self.metrics.summary(),
            "correlations": [p.to_dict() for p in self.correlations],
            "monthly_returns": [
                {
                    "month": m.label,
                    "profit": round(m.profit, 2),
                    "return_pct": round(m.return_pct, 2),
                    "trades": m.trades,
                }
                for m in self.monthly
            ],
            "drawdown_periods": [
                {
                    "start": d.start.isoformat() if d.start else None,
                    "end": d.end.isoformat() if d.end else None,
                    "max_drawdown": round(d.max_drawdown_abs, 2),
                    "max_drawdown_pct": round(d.max_drawdown_pct, 2),
                    "recovered": d.recovered,
                }
                for d in self.drawdowns
            ],
            "simulation": self.simulation.summary() if self.simulation else None,
        }


def build_report(
    parsed: ParsedReport,
    *,
    initial_balance: float | None = None,
    settings: Settings | None = None,
) -> TradeReport:
    """Run equity, metrics, correlation, distribution, period and Monte Carlo analysis."""
    settings = settings or Settings()
    trades = parsed.trades

    if initial_balance is None:
        seeded = parsed.summary.get("Initial Balance")
        if isinstance(seeded, (int, float)):
            initial_balance = float(seeded)

    curve = build_equity_curve(trades, initial_balance)
    metrics = compute_metrics(trades, curve, settings.metrics)

    report = TradeReport(
        parsed=parsed,
        curve=curve,
        metrics=metrics,
        correlations=CorrelationAnalyzer(settings.correlation).analyze(trades),
        distributions=DistributionBinner(settings.distribution).all(trades),
        monthly=monthly_returns(trades, curve.initial_balance),
        drawdowns=drawdown_periods(curve, settings.distribution.drawdown_period_min_pct),
    )

    simulator = MonteCarloSimulator(settings.monte_carlo)
    try:
        report.simulation = simulator.simulate_trades(
            trades,
            starting_equity=curve.final_equity,
            initial_balance=curve.initial_balance,
        )
    except AnalyticsError as exc:
        logger.warning("Monte Carlo skipped: %s", exc)

    return report
