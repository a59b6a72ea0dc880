"""Configuration section models."""

from leadrouter.config.models.api import APIConfig
from leadrouter.config.models.directory import DirectoryConfig
from leadrouter.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from leadrouter.config.models.routing import DispatchConfig, RulesConfig
from leadrouter.config.models.storage import PostgresConfig, StorageConfig

__all__ = [
    "APIConfig",
    "DirectoryConfig",
    "DispatchConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "PostgresConfig",
    "RulesConfig",
    "StorageConfig",
]
