"""Test Settings loading from TOML, overrides and environment variables."""

import pytest

from trade_report.core.config import Settings, load_settings
from trade_report.core.enums import Platform, ReturnBasis
from trade_report.core.errors import ConfigError


class TestDefaults:
    def test_default_settings(self):
        settings = Settings()
        assert settings.parser.default_platform == Platform.MT5
        assert settings.parser.tradingview_initial_balance == 10_000.0
        assert settings.parser.tradingview_symbol == "STRATEGY"
        assert settings.parser.default_symbol == "UNKNOWN"

    def test_analytics_defaults(self):
        settings = Settings()
        assert settings.metrics.profit_factor_cap == 100.0
        assert settings.metrics.ratio_cap == 10.0
        assert settings.correlation.min_active_days == 4
        assert settings.monte_carlo.runs == 1000
        assert settings.monte_carlo.horizon == 12
        assert settings.monte_carlo.seed == 42
        assert settings.monte_carlo.return_basis == ReturnBasis.TRADE
        assert settings.distribution.profit_bins == 20

    def test_observability_defaults(self):
        settings = Settings()
        assert settings.observability.log_level == "INFO"
        assert settings.observability.log_format == "console"


class TestLoadSettings:
    def test_no_file(self):
        assert load_settings().monte_carlo.runs == 1000

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_settings(tmp_path / "absent.toml").monte_carlo.runs == 1000

    def test_toml_file(self, tmp_path):
        path = tmp_path / "report.toml"
        path.write_text(
            '[parser]\ndefault_platform = "mt4"\n\n'
            "[monte_carlo]\nruns = 250\nseed = 7\nreturn_basis = \"monthly\"\n"
        )
        settings = load_settings(path)
        assert settings.parser.default_platform == Platform.MT4
        assert settings.monte_carlo.runs == 250
        assert settings.monte_carlo.seed == 7
        assert settings.monte_carlo.return_basis == ReturnBasis.MONTHLY

    def test_overrides_merge_per_section(self, tmp_path):
        path = tmp_path / "report.toml"
        path.write_text("[monte_carlo]\nruns = 250\n")
        settings = load_settings(path, {"monte_carlo": {"horizon": 24}})
        assert settings.monte_carlo.runs == 250
        assert settings.monte_carlo.horizon == 24

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TRADE_REPORT_MONTE_CARLO__RUNS", "50")
        assert Settings().monte_carlo.runs == 50


class TestInvalidConfig:
    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[monte_carlo\nruns = ")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_out_of_range_value(self):
        with pytest.raises(ConfigError):
            load_settings(overrides={"monte_carlo": {"runs": 0}})

    def test_unknown_platform(self):
        with pytest.raises(ConfigError):
            load_settings(overrides={"parser": {"default_platform": "ctrader"}})
