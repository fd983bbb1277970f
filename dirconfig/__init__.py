"""Directory configuration loader with a validated persistent cache."""

from .loader.file import (
    ConfigNotFoundError,
    ConfigurationError,
    MalformedContentError,
    UnsupportedFormatError,
)
from .manager import ConfigService, FileClass, LoadState
from .settings import SettingsError, load_settings
from .storage.cache import CacheWriteError, ConfigCache, InvalidCacheLocationError

__all__ = [
    "ConfigService",
    "ConfigCache",
    "FileClass",
    "LoadState",
    "load_settings",
    "ConfigurationError",
    "ConfigNotFoundError",
    "MalformedContentError",
    "UnsupportedFormatError",
    "CacheWriteError",
    "InvalidCacheLocationError",
    "SettingsError",
]
