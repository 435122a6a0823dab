"""Monte Carlo equity simulator: forward-looking risk analysis.

Bootstrap-resamples the account's historical returns to project future
equity paths and derive percentile bands, drawdown distribution,
probability of profit and probability of ruin.

Each run owns a ``numpy.random.Generator`` spawned from one
``SeedSequence``, so runs are independent of each other and of evaluation
order: the same seed gives the same result whether runs execute serially
or on a thread pool.

Usage::

    simulator = MonteCarloSimulator(MonteCarloConfig(runs=1000, horizon=12))
    result = simulator.simulate(returns_pct, starting_equity=10_000)
    print(result.probability_of_profit)   # 71.3
    print(result.bands[-1].p5)            # 8_950.0
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from trade_report.core.config import MonteCarloConfig
from trade_report.core.enums import ReturnBasis
from trade_report.core.errors import AnalyticsError, InsufficientDataError
from trade_report.core.models import Trade

from .equity import build_equity_curve, infer_initial_balance
from .metrics import trade_returns
from .periods import monthly_returns

logger = logging.getLogger(__name__)


@dataclass
class PercentileBand:
    period: int
    p5: float
    median: float
    p95: float
    drawdown_p5: float  # Fractions of the running peak
    drawdown_median: float
    drawdown_p95: float


@dataclass
class SimulationResult:
    """Outcome of a Monte Carlo run set."""

    runs: int
    horizon: int
    starting_equity: float
    return_basis: ReturnBasis
    source_samples: int
    seed: int | None

    paths: np.ndarray = field(repr=False)  # runs x (horizon + 1)
    drawdowns: np.ndarray = field(repr=False)  # runs x (horizon + 1)
    bands: list[PercentileBand] = field(default_factory=list)

    probability_of_profit: float = 0.0  # Percent of runs ending above start
    median_return_pct: float = 0.0
    best_case_return_pct: float = 0.0  # P95 terminal return
    worst_case_return_pct: float = 0.0  # P5 terminal return
    max_drawdown_p95: float = 0.0  # Percent
    ruin_probability: float = 0.0  # Percent

    def summary(self) -> dict[str, Any]:
        """Scalar outputs plus bands, without the raw path arrays."""
        return {
            "runs": self.runs,
            "horizon": self.horizon,
            "starting_equity": self.starting_equity,
            "return_basis": self.return_basis.value,
            "source_samples": self.source_samples,
            "probability_of_profit": round(self.probability_of_profit, 2),
            "median_return_pct": round(self.median_return_pct, 2),
            "best_case_return_pct": round(self.best_case_return_pct, 2),
            "worst_case_return_pct": round(self.worst_case_return_pct, 2),
            "max_drawdown_p95": round(self.max_drawdown_p95, 2),
            "ruin_probability": round(self.ruin_probability, 2),
            "bands": [
                {
                    "period": b.period,
                    "p5": round(b.p5, 2),
                    "median": round(b.median, 2),
                    "p95": round(b.p95, 2),
                    "drawdown_p95": round(b.drawdown_p95 * 100, 2),
                }
                for b in self.bands
            ],
        }


def _rank_indices(n: int) -> tuple[int, int, int]:
    """Nearest-rank positions of P5, median and P95 in a sorted sample of *n*."""
    p5 = min(n - 1, int(math.floor(0.05 * n)))
    p95 = min(n - 1, int(math.floor(0.95 * n)))
    return p5, n // 2, p95


class MonteCarloSimulator:
    """Bootstrap Monte Carlo over an empirical return distribution.

    Parameters
    ----------
    config : MonteCarloConfig | None
        Runs, horizon, seed, worker count, return basis, ruin threshold
        and minimum sample size.
    """

    def __init__(self, config: MonteCarloConfig | None = None) -> None:
        self._config = config or MonteCarloConfig()

    # ------------------------------------------------------------------ #
    # Sample extraction                                                    #
    # ------------------------------------------------------------------ #

    def sample_returns(
        self,
        trades: Sequence[Trade],
        initial_balance: float | None = None,
        basis: ReturnBasis | None = None,
    ) -> list[float]:
        """Empirical returns (percent) for the configured basis."""
        basis = basis or self._config.return_basis
        if initial_balance is None:
            initial_balance = infer_initial_balance(trades)
        if basis == ReturnBasis.MONTHLY:
            return [m.return_pct for m in monthly_returns(trades, initial_balance)]
        return trade_returns(trades, initial_balance)

    # ------------------------------------------------------------------ #
    # Simulation                                                           #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _run_path(
        rng: np.random.Generator,
        samples: np.ndarray,
        horizon: int,
        start: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        drawn = rng.choice(samples, size=horizon, replace=True)
        # A loss of 100% or more wipes the account; equity never goes negative.
        factors = np.maximum(1.0 + drawn / 100.0, 0.0)
        path = np.empty(horizon + 1)
        path[0] = start
        path[1:] = start * np.cumprod(factors)
        peak = np.maximum.accumulate(path)
        with np.errstate(divide="ignore", invalid="ignore"):
            dd = np.where(peak > 0, (peak - path) / peak, 0.0)
        return path, dd

    def simulate(
        self,
        returns_pct: Sequence[float],
        starting_equity: float,
        *,
        runs: int | None = None,
        horizon: int | None = None,
        seed: int | None = None,
        basis: ReturnBasis | None = None,
    ) -> SimulationResult:
        """Resample *returns_pct* into ``runs`` paths of ``horizon`` periods.

        Raises
        ------
        InsufficientDataError
            Fewer than ``min_samples`` returns.
        AnalyticsError
            Non-positive starting equity or run/horizon below 1.
        """
        cfg = self._config
        runs = cfg.runs if runs is None else runs
        horizon = cfg.horizon if horizon is None else horizon
        seed = cfg.seed if seed is None else seed
        basis = basis or cfg.return_basis

        if len(returns_pct) < cfg.min_samples:
            raise InsufficientDataError(cfg.min_samples, len(returns_pct))
        if starting_equity <= 0:
            raise AnalyticsError(f"starting_equity must be positive, got {starting_equity}")
        if runs < 1 or horizon < 1:
            raise AnalyticsError(f"runs and horizon must be >= 1 (got {runs}, {horizon})")

        samples = np.asarray(returns_pct, dtype=float)
        children = np.random.SeedSequence(seed).spawn(runs)

        def one(idx: int) -> tuple[np.ndarray, np.ndarray]:
            rng = np.random.default_rng(children[idx])
            return self._run_path(rng, samples, horizon, starting_equity)

        if cfg.n_workers > 1 and runs > 1:
            with ThreadPoolExecutor(max_workers=cfg.n_workers) as pool:
                outcomes = list(pool.map(one, range(runs)))
        else:
            outcomes = [one(i) for i in range(runs)]

        paths = np.vstack([o[0] for o in outcomes])
        drawdowns = np.vstack([o[1] for o in outcomes])

        result = SimulationResult(
            runs=runs,
            horizon=horizon,
            starting_equity=starting_equity,
            return_basis=basis,
            source_samples=len(samples),
            seed=seed,
            paths=paths,
            drawdowns=drawdowns,
        )
        self._aggregate(result)
        logger.info(
            "Monte Carlo: runs=%d horizon=%d samples=%d P(profit)=%.1f%% ruin=%.1f%%",
            runs, horizon, len(samples),
            result.probability_of_profit, result.ruin_probability,
        )
        return result

    def simulate_trades(
        self,
        trades: Sequence[Trade],
        starting_equity: float | None = None,
        initial_balance: float | None = None,
        **overrides: Any,
    ) -> SimulationResult:
        """Simulate from a trade list; starting equity defaults to its final balance."""
        basis = overrides.pop("basis", None) or self._config.return_basis
        if initial_balance is None:
            initial_balance = infer_initial_balance(trades)
        samples = self.sample_returns(trades, initial_balance, basis)
        if starting_equity is None:
            starting_equity = build_equity_curve(trades, initial_balance).final_equity
        return self.simulate(samples, starting_equity, basis=basis, **overrides)

    # ------------------------------------------------------------------ #
    # Aggregation                                                          #
    # ------------------------------------------------------------------ #

    def _aggregate(self, result: SimulationResult) -> None:
        n = result.runs
        i5, i50, i95 = _rank_indices(n)
        start = result.starting_equity

        sorted_paths = np.sort(result.paths, axis=0)
        sorted_dd = np.sort(result.drawdowns, axis=0)
        result.bands = [
            PercentileBand(
                period=t,
                p5=float(sorted_paths[i5, t]),
                median=float(sorted_paths[i50, t]),
                p95=float(sorted_paths[i95, t]),
                drawdown_p5=float(sorted_dd[i5, t]),
                drawdown_median=float(sorted_dd[i50, t]),
                drawdown_p95=float(sorted_dd[i95, t]),
            )
            for t in range(result.horizon + 1)
        ]

        terminal = result.paths[:, -1]
        terminal_returns = np.sort((terminal / start - 1.0) * 100.0)
        result.probability_of_profit = float(np.mean(terminal > start) * 100.0)
        result.median_return_pct = float(terminal_returns[i50])
        result.best_case_return_pct = float(terminal_returns[i95])
        result.worst_case_return_pct = float(terminal_returns[i5])

        worst_dd = np.sort(result.drawdowns.max(axis=1))
        result.max_drawdown_p95 = float(worst_dd[i95] * 100.0)

        ruin_level = start * (1.0 - self._config.ruin_threshold_pct)
        ruined = result.paths.min(axis=1) <= ruin_level
        result.ruin_probability = float(np.mean(ruined) * 100.0)
