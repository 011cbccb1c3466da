"""
Configuration management for the KPI alerting engine.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models to ensure
type safety and catch configuration errors early.

Configuration is loaded from YAML files in the config/ directory:
    - alerts.yaml: Threshold bands, duplicate window, schedule, retention
    - features.yaml: Cache TTLs, comparison defaults, logging

Environment variables can override connection settings:
    - DATABASE_URL: PostgreSQL connection URL
    - LOG_LEVEL: Application log level

Modules:
    loader: Configuration file loading utilities
    models: Pydantic models for configuration validation
"""

from txn_analytics.config.loader import (
    ConfigLoadError,
    ConfigLoader,
    InvalidConfigurationError,
    load_config,
)
from txn_analytics.config.models import (
    # Enums
    LogFormat,
    LogLevel,
    # Alert config
    AlertsConfig,
    ScheduleConfig,
    ThresholdBand,
    ThresholdConfig,
    # Features config
    CacheConfig,
    ComparisonConfig,
    FeaturesConfig,
    LoggingConfig,
    # Connection config
    PostgresConnectionConfig,
    # Root config
    AppConfig,
)

__all__: list[str] = [
    # Loader
    "ConfigLoader",
    "ConfigLoadError",
    "InvalidConfigurationError",
    "load_config",
    # Enums
    "LogFormat",
    "LogLevel",
    # Alert config
    "AlertsConfig",
    "ScheduleConfig",
    "ThresholdBand",
    "ThresholdConfig",
    # Features config
    "CacheConfig",
    "ComparisonConfig",
    "FeaturesConfig",
    "LoggingConfig",
    # Connection config
    "PostgresConnectionConfig",
    # Root config
    "AppConfig",
]
