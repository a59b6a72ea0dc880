"""Office/staff directory configuration."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

DirectoryBackend = Literal["inmemory", "http"]


class OfficeSeed(BaseModel):
    """One office loaded into the in-memory directory at startup."""

    id: str = Field(..., min_length=1)
    name: str = ""
    city: str | None = None
    consultant_ids: list[str] = Field(default_factory=list)


class DirectoryConfig(BaseModel):
    """Where office records and consultant membership are read from."""

    backend: DirectoryBackend = Field(
        default="inmemory",
        description="Directory implementation",
    )
    base_url: str = Field(
        default="http://localhost:8100",
        description="Base URL of the staff directory service (http backend)",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Request timeout for directory lookups",
    )
    token: str | None = Field(
        default=None,
        description="Bearer token for the directory service; set via LEADROUTER_DIRECTORY__TOKEN",
    )
    offices: list[OfficeSeed] = Field(
        default_factory=list,
        description="Offices for the inmemory backend, as [[directory.offices]] tables",
    )

    @field_validator("offices")
    @classmethod
    def unique_office_ids(cls, v: list[OfficeSeed]) -> list[OfficeSeed]:
        seen: set[str] = set()
        for office in v:
            if office.id in seen:
                raise ValueError(f"office {office.id} is listed twice")
            seen.add(office.id)
        return v
