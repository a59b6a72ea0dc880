"""Configuration loading for leadrouter.

Configuration is loaded from TOML files with environment variable overrides.

Usage:
    from leadrouter.config import get_settings

    settings = get_settings()
    strategy = settings.dispatch.selection_strategy
"""

from functools import lru_cache

from leadrouter.config.loader import load_config
from leadrouter.config.settings import Settings, set_toml_config
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    The result is cached for the lifetime of the process. Without a
    config/default.toml the model defaults and environment are used.
    Call `get_settings.cache_clear()` or `reload_settings()` to reload.
    """
    try:
        set_toml_config(load_config())
    except FileNotFoundError as e:
        logger.warning("config_file_not_found", error=str(e))
        set_toml_config({})
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
