"""Root settings model for leadrouter configuration."""

from typing import Any

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from leadrouter.config.models.api import APIConfig
from leadrouter.config.models.directory import DirectoryConfig
from leadrouter.config.models.observability import ObservabilityConfig
from leadrouter.config.models.routing import DispatchConfig, RulesConfig
from leadrouter.config.models.storage import StorageConfig

_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Install the merged TOML tree read by the next Settings() call."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Feeds the merged TOML tree to Settings, below environment variables.

    Only top-level keys are looked up here; nested tables are validated
    by the section models, and env vars for a single nested key are
    merged over them by pydantic-settings.
    """

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._values = dict(_toml_config)

    def get_field_value(
        self, field: FieldInfo, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, field_name in self._values

    def __call__(self) -> dict[str, Any]:
        known = self.settings_cls.model_fields
        return {key: value for key, value in self._values.items() if key in known}


class Settings(BaseSettings):
    """All leadrouter configuration.

    Sources, lowest to highest precedence: model defaults,
    config/default.toml, config/{LEADROUTER_ENV}.toml, then
    LEADROUTER_* environment variables with ``__`` between nested keys
    (``LEADROUTER_DISPATCH__SELECTION_STRATEGY=least_loaded``).
    """

    model_config = SettingsConfigDict(
        env_prefix="LEADROUTER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="leadrouter", description="Service name bound into logs")
    debug: bool = Field(default=False, description="Enable debug mode")

    api: APIConfig = Field(default_factory=APIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    directory: DirectoryConfig = Field(
        default_factory=DirectoryConfig,
        description="Where office membership is read from",
    )
    rules: RulesConfig = Field(
        default_factory=RulesConfig,
        description="Constraints applied when rules are written",
    )
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win; no .env or secrets-dir support.
        return init_settings, env_settings, TomlConfigSettingsSource(settings_cls)
