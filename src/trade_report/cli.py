"""CLI entry point for the trade report engine."""

from __future__ import annotations

import json
from pathlib import Path

import click

from .core.enums import DistributionDimension, Platform, ReturnBasis
from .core.errors import ConfigError, IngestError


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _parse(ctx: click.Context, file: str, initial_balance: float | None, platform: str | None):
    from .ingest.parser import TradeReportParser

    settings = ctx.obj["settings"]
    parser = TradeReportParser(settings.parser)
    try:
        return parser.parse_file(
            file,
            initial_balance=initial_balance,
            platform=Platform(platform) if platform else None,
        )
    except IngestError as exc:
        raise click.ClickException(str(exc)) from exc


_file_argument = click.argument("file", type=click.Path(exists=True, dir_okay=False))
_platform_option = click.option(
    "--platform",
    type=click.Choice([p.value for p in Platform]),
    default=None,
    help="Skip detection and prefer this platform's layouts",
)
_balance_option = click.option(
    "--initial-balance", type=float, default=None, help="Starting balance override",
)


@click.group()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--log-level", default=None, help="Override log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None)
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str | None, log_format: str | None) -> None:
    """Trade report analytics for MT4 / MT5 / TradingView exports."""
    from .core.config import load_settings
    from .observability.logger import new_run_id, setup_logging

    overrides: dict = {}
    if log_level:
        overrides.setdefault("observability", {})["log_level"] = log_level
    if log_format:
        overrides.setdefault("observability", {})["log_format"] = log_format
    try:
        settings = load_settings(config, overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(settings.observability.log_level, settings.observability.log_format)
    new_run_id()
    ctx.obj = {"settings": settings}


@main.command()
@_file_argument
@_balance_option
@_platform_option
@click.option("--runs", type=int, default=None, help="Monte Carlo runs")
@click.option("--horizon", type=int, default=None, help="Monte Carlo periods per path")
@click.option("--seed", type=int, default=None, help="Monte Carlo seed")
@click.pass_context
def analyze(
    ctx: click.Context,
    file: str,
    initial_balance: float | None,
    platform: str | None,
    runs: int | None,
    horizon: int | None,
    seed: int | None,
) -> None:
    """Parse FILE and print the full report summary as JSON."""
    from .report import build_report

    settings = ctx.obj["settings"]
    mc = settings.monte_carlo
    updates = {k: v for k, v in (("runs", runs), ("horizon", horizon), ("seed", seed)) if v is not None}
    if updates:
        settings = settings.model_copy(update={"monte_carlo": mc.model_copy(update=updates)})

    parsed = _parse(ctx, file, initial_balance, platform)
    report = build_report(parsed, initial_balance=initial_balance, settings=settings)
    _echo_json(report.summary())


@main.command()
@_file_argument
@click.argument("output", type=click.Path(dir_okay=False))
@_balance_option
@_platform_option
@click.pass_context
def export(
    ctx: click.Context,
    file: str,
    output: str,
    initial_balance: float | None,
    platform: str | None,
) -> None:
    """Write FILE's trades to OUTPUT as a normalised MT5-style CSV."""
    from .export import TradeExporter

    parsed = _parse(ctx, file, initial_balance, platform)
    path = TradeExporter().write_csv(parsed.trades, output)
    click.echo(f"Wrote {len(parsed.trades)} trades to {Path(path)}")


@main.command()
@_file_argument
@_balance_option
@_platform_option
@click.option("--runs", type=int, default=None, help="Number of simulated paths")
@click.option("--horizon", type=int, default=None, help="Periods per path")
@click.option("--starting-equity", type=float, default=None, help="Default: final balance")
@click.option("--basis", type=click.Choice([b.value for b in ReturnBasis]), default=None)
@click.option("--seed", type=int, default=None)
@click.pass_context
def simulate(
    ctx: click.Context,
    file: str,
    initial_balance: float | None,
    platform: str | None,
    runs: int | None,
    horizon: int | None,
    starting_equity: float | None,
    basis: str | None,
    seed: int | None,
) -> None:
    """Run a Monte Carlo projection over FILE's historical returns."""
    from .analytics.monte_carlo import MonteCarloSimulator
    from .core.errors import AnalyticsError

    settings = ctx.obj["settings"]
    parsed = _parse(ctx, file, initial_balance, platform)
    simulator = MonteCarloSimulator(settings.monte_carlo)
    try:
        result = simulator.simulate_trades(
            parsed.trades,
            starting_equity=starting_equity,
            initial_balance=initial_balance,
            runs=runs,
            horizon=horizon,
            seed=seed,
            basis=ReturnBasis(basis) if basis else None,
        )
    except AnalyticsError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(result.summary())


@main.command()
@_file_argument
@_platform_option
@click.pass_context
def correlate(ctx: click.Context, file: str, platform: str | None) -> None:
    """Print pairwise instrument correlations for FILE."""
    from .analytics.correlation import CorrelationAnalyzer

    settings = ctx.obj["settings"]
    parsed = _parse(ctx, file, None, platform)
    pairs = CorrelationAnalyzer(settings.correlation).analyze(parsed.trades)
    _echo_json([p.to_dict() for p in pairs])


@main.command()
@_file_argument
@_platform_option
@click.option(
    "--by",
    "dimension",
    type=click.Choice([d.value for d in DistributionDimension]),
    default=DistributionDimension.PROFIT.value,
    show_default=True,
)
@click.pass_context
def distribution(ctx: click.Context, file: str, platform: str | None, dimension: str) -> None:
    """Print a histogram of FILE's closed trades."""
    from .analytics.distribution import DistributionBinner

    settings = ctx.obj["settings"]
    parsed = _parse(ctx, file, None, platform)
    bins = DistributionBinner(settings.distribution).bin(parsed.trades, dimension)
    _echo_json([b.to_dict() for b in bins])
