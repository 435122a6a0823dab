"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from .enums import Platform, ReturnBasis


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ParserConfig(BaseModel):
    default_platform: Platform = Platform.MT5  # Used when detection is ambiguous
    tradingview_initial_balance: float = 10_000.0  # TradingView has no deposit row
    tradingview_symbol: str = "STRATEGY"  # TradingView trade lists carry no symbol column
    default_symbol: str = "UNKNOWN"  # Generic exports without a symbol column


class MetricsConfig(BaseModel):
    profit_factor_cap: float = 100.0  # Reported when there are no losing trades
    ratio_cap: float = 10.0  # Sharpe/Sortino when deviation is zero
    tail_ratio_min_samples: int = 20
    var_confidence: float = 0.95


class CorrelationConfig(BaseModel):
    min_active_days: int = 4  # Per symbol, to be paired at all


class MonteCarloConfig(BaseModel):
    runs: int = Field(default=1000, ge=1)
    horizon: int = Field(default=12, ge=1)  # Periods per path
    seed: int | None = 42
    n_workers: int = Field(default=1, ge=1)
    return_basis: ReturnBasis = ReturnBasis.TRADE
    ruin_threshold_pct: float = 0.5  # 50% drawdown from start = ruin
    min_samples: int = 5


class DistributionConfig(BaseModel):
    profit_bins: int = Field(default=20, ge=1)
    drawdown_period_min_pct: float = 5.0


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level engine settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    parser: ParserConfig = Field(default_factory=ParserConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    correlation: CorrelationConfig = Field(default_factory=CorrelationConfig)
    monte_carlo: MonteCarloConfig = Field(default_factory=MonteCarloConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "TRADE_REPORT_", "env_nested_delimiter": "__"}


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides merged on top, section by section.

    Raises:
        ConfigError: The file is not valid TOML or fails validation.
    """
    from .errors import ConfigError

    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
