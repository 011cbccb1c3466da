"""Tests for configuration models and the YAML loader."""

from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from txn_analytics.config.loader import (
    ConfigLoadError,
    ConfigLoader,
    InvalidConfigurationError,
    load_config,
)
from txn_analytics.config.models import (
    AppConfig,
    CacheConfig,
    FeaturesConfig,
    LogFormat,
    LogLevel,
    ThresholdBand,
    ThresholdConfig,
)

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config"

ALERTS_YAML = """
enabled: true
thresholds:
  revenue_drop:
    warning: 15
    critical: 35
  pending:
    warning: 50
  high_volume_multiplier: 2
duplicate_window_hours: 12
schedule:
  cycle_interval_seconds: 600
retention_days: 14
"""

FEATURES_YAML = """
cache:
  kpi_ttl_seconds: 10
logging:
  format: text
  level: DEBUG
"""


def _write(tmp_path: Path, alerts: str = ALERTS_YAML, features: str = FEATURES_YAML) -> Path:
    (tmp_path / "alerts.yaml").write_text(alerts)
    (tmp_path / "features.yaml").write_text(features)
    return tmp_path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


# ============================================================================
# Models
# ============================================================================


class TestThresholdConfig:
    def test_threshold_config_defaults(self):
        config = ThresholdConfig()

        assert config.enabled is True
        assert config.revenue_drop == ThresholdBand(warning=20, critical=40)
        assert config.failed_spike == ThresholdBand(warning=30, critical=50)
        assert config.success_rate == ThresholdBand(warning=80, critical=70)
        assert config.pending == ThresholdBand(warning=100, critical=500)
        assert config.high_volume_multiplier == Decimal("1.5")
        assert config.duplicate_window_hours == 6

    def test_threshold_config_rejects_inverted_rising_band(self):
        with pytest.raises(ValidationError):
            ThresholdConfig(revenue_drop=ThresholdBand(warning=40, critical=20))

    def test_threshold_config_rejects_inverted_floor_band(self):
        with pytest.raises(ValidationError):
            ThresholdConfig(success_rate=ThresholdBand(warning=70, critical=80))

    def test_threshold_config_rejects_negative_window(self):
        with pytest.raises(ValidationError):
            ThresholdConfig(duplicate_window_hours=-1)

    def test_threshold_band_coerces_floats_to_decimal(self):
        band = ThresholdBand(warning=12.5, critical=30)
        assert band.warning == Decimal("12.5")
        assert isinstance(band.critical, Decimal)

    def test_threshold_config_is_frozen(self):
        config = ThresholdConfig()
        with pytest.raises(ValidationError):
            config.enabled = False

    def test_app_config_rejects_history_ttl_below_kpi_ttl(self):
        with pytest.raises(ValidationError):
            AppConfig(
                features=FeaturesConfig(
                    cache=CacheConfig(kpi_ttl_seconds=60, history_ttl_seconds=30)
                )
            )


# ============================================================================
# Loader
# ============================================================================


class TestConfigLoader:
    def test_load_reads_yaml_values(self, tmp_path):
        config = load_config(_write(tmp_path))

        thresholds = config.alerts.thresholds
        assert thresholds.revenue_drop == ThresholdBand(warning=15, critical=35)
        assert thresholds.pending == ThresholdBand(warning=50, critical=500)
        assert thresholds.failed_spike == ThresholdBand(warning=30, critical=50)
        assert thresholds.high_volume_multiplier == Decimal("2")
        assert thresholds.duplicate_window_hours == 12
        assert config.alerts.schedule.cycle_interval_seconds == 600
        assert config.alerts.schedule.cleanup_interval_seconds == 86400
        assert config.alerts.retention_days == 14
        assert config.features.cache.kpi_ttl_seconds == 10
        assert config.features.logging.format == LogFormat.TEXT

    def test_load_log_level_from_features(self, tmp_path):
        config = load_config(_write(tmp_path))
        assert config.log_level == LogLevel.DEBUG

    def test_load_log_level_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        config = load_config(_write(tmp_path))
        assert config.log_level == LogLevel.WARNING

    def test_load_database_url_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/kpis")
        config = load_config(_write(tmp_path))
        assert config.postgres.url == "postgresql://u:p@db:5432/kpis"

    def test_load_invalid_band_raises(self, tmp_path):
        alerts = """
thresholds:
  pending:
    warning: 500
    critical: 100
"""
        with pytest.raises(InvalidConfigurationError):
            load_config(_write(tmp_path, alerts=alerts))

    def test_load_negative_duplicate_window_raises(self, tmp_path):
        with pytest.raises(InvalidConfigurationError):
            load_config(_write(tmp_path, alerts="duplicate_window_hours: -2\n"))

    def test_load_missing_directory_raises(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            ConfigLoader(tmp_path / "nope")

    def test_load_missing_file_raises(self, tmp_path):
        (tmp_path / "alerts.yaml").write_text(ALERTS_YAML)
        with pytest.raises(ConfigLoadError):
            load_config(tmp_path)

    def test_load_empty_file_raises(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            load_config(_write(tmp_path, alerts=""))

    def test_load_invalid_yaml_raises(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            load_config(_write(tmp_path, alerts="thresholds: [unclosed\n"))

    def test_load_shipped_config(self):
        config = load_config(REPO_CONFIG)

        assert config.alerts.thresholds == ThresholdConfig()
        assert config.alerts.max_notifications_returned == 50
        assert config.features.cache.history_ttl_seconds == 120
