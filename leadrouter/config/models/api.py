"""HTTP server settings for the operator API."""

from pydantic import BaseModel, Field, field_validator


class APIConfig(BaseModel):
    """Bind address, CORS policy and docs exposure of the operator API."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, ge=1, le=65535)
    workers: int = Field(default=2, ge=1, description="uvicorn worker processes")
    docs_enabled: bool = Field(
        default=True,
        description="Serve /docs, /redoc and /openapi.json",
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins of the operator UI; LEADROUTER_API__CORS_ORIGINS takes a comma list",
    )
    cors_allow_credentials: bool = True
    expose_headers: list[str] = Field(
        default=["X-Request-ID", "ETag"],
        description="Response headers the operator UI may read",
    )

    @field_validator("cors_origins", "expose_headers", mode="before")
    @classmethod
    def split_comma_list(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v
