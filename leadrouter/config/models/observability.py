"""Logging and metrics settings."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]


class LoggingConfig(BaseModel):
    level: LogLevel = "INFO"
    format: LogFormat = Field(default="json", description="json in deployments, console locally")
    redact_pii: bool = Field(
        default=True,
        description="Mask lead e-mail, phone and name fields in log events",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class MetricsConfig(BaseModel):
    enabled: bool = Field(default=True, description="Serve Prometheus metrics")
    path: str = Field(default="/metrics", pattern=r"^/\S*$", description="Scrape path")


class ObservabilityConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
