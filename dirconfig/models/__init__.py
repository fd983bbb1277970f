"""Settings and cache record models."""

from .schemas import CacheRecord, CacheSettings, ServiceSettings

__all__ = ["CacheRecord", "CacheSettings", "ServiceSettings"]
