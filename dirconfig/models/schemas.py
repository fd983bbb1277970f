"""Pydantic models for the loader's own settings and the persisted cache record.

This module defines:
- Settings for the configuration service and its cache
- The on-disk cache record shape
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CACHE_SCHEMA_VERSION = 1

DEFAULT_EXCLUDED_FILES = ["routes.py", "services.py"]


class LogLevel(str, Enum):
    """Logging level enumeration."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class BaseConfig(BaseModel):
    """Base configuration class with common functionality."""

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        use_enum_values=True,
    )


# =============================================================================
# Service Settings
# =============================================================================


class CacheSettings(BaseConfig):
    """Settings for the persisted configuration cache."""

    file: Path = Field(
        default=Path("var/cache/config.cache"),
        description="Cache backing file",
    )
    ttl: int = Field(
        default=60,
        description="Maximum cache age in seconds, 0 or less never expires",
    )


class ServiceSettings(BaseConfig):
    """Settings for the configuration service."""

    config_dir: Path = Field(default=Path("config"), description="Config directory")
    files: Optional[list[str]] = Field(
        default=None,
        description="Explicit static file list, scans config_dir when unset",
    )
    excluded_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_FILES),
        description="File names loaded fresh on every load, never cached",
    )
    cache: CacheSettings = Field(default_factory=CacheSettings)
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("excluded_files")
    @classmethod
    def validate_excluded_files(cls, v: list[str]) -> list[str]:
        for name in v:
            if not name or Path(name).name != name:
                raise ValueError(f"Excluded file must be a bare file name: {name!r}")
        return v


# =============================================================================
# Cache Record
# =============================================================================


class CacheRecord(BaseModel):
    """Persisted cache unit: the static file signature and its parsed tree."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=CACHE_SCHEMA_VERSION)
    signature: str = Field(..., min_length=1)
    data: dict[str, Any]

    @field_validator("schema_version")
    @classmethod
    def validate_schema_version(cls, v: int) -> int:
        if v != CACHE_SCHEMA_VERSION:
            raise ValueError(f"Unsupported cache schema version: {v}")
        return v
