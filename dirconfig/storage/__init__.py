"""Cache storage for loaded configuration."""

from .cache import ConfigCache, default_unsafe_roots, validate_cache_location
from .locking import exclusive_lock

__all__ = ["ConfigCache", "default_unsafe_roots", "validate_cache_location", "exclusive_lock"]
