"""Persisted configuration cache.

Stores the parsed static configuration tree together with a signature of the
files it was parsed from. A record is only served while every tracked file
still has the same path, modification time and size, and while the record is
younger than the TTL. Anything else (stale signature, expired record, corrupt
payload) deletes the record and reports a miss.
"""

import contextlib
import hashlib
import logging
import os
import pickle
import struct
import tempfile
import time
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from ..loader.file import ConfigurationError
from ..models.schemas import CACHE_SCHEMA_VERSION, CacheRecord
from .locking import exclusive_lock

logger = logging.getLogger(__name__)

# Rejected even when TMPDIR points somewhere else
TEMP_ROOTS = (Path("/tmp"), Path("/var/tmp"))

WEB_ROOTS = (
    Path("/var/www"),
    Path("/srv/www"),
    Path("/srv/http"),
    Path("/usr/share/nginx/html"),
    Path("/usr/local/apache2/htdocs"),
)

_CORRUPT_PAYLOAD_ERRORS = (
    pickle.UnpicklingError,
    ValidationError,
    EOFError,
    AttributeError,
    ImportError,
    IndexError,
    KeyError,
    TypeError,
    ValueError,
    OverflowError,
    MemoryError,
    RecursionError,
    struct.error,
)


class CacheWriteError(ConfigurationError):
    """Exception raised when the cache file cannot be written."""

    pass


class InvalidCacheLocationError(ConfigurationError):
    """Exception raised when the cache file location is unsafe."""

    pass


def default_unsafe_roots() -> list[Path]:
    """Directories a cache file must never live under.

    The platform temp directory (plus ``/tmp`` and ``/var/tmp``),
    ``$DOCUMENT_ROOT`` when set, and the usual web server document roots.
    """
    roots = [Path(tempfile.gettempdir())]
    roots.extend(root for root in TEMP_ROOTS if root not in roots)
    document_root = os.environ.get("DOCUMENT_ROOT")
    if document_root:
        roots.append(Path(document_root))
    roots.extend(WEB_ROOTS)
    return roots


def validate_cache_location(
    cache_file: Union[str, Path],
    unsafe_roots: Optional[Sequence[Union[str, Path]]] = None,
) -> Path:
    """Resolve a cache file path and reject unsafe locations.

    Args:
        cache_file: Requested cache file path
        unsafe_roots: Directories to reject (defaults to ``default_unsafe_roots()``)

    Returns:
        The resolved cache file path

    Raises:
        InvalidCacheLocationError: If the path is a directory or lies under an unsafe root
    """
    if not str(cache_file):
        raise InvalidCacheLocationError("Cache file path is empty")

    path = Path(cache_file).expanduser().resolve()
    if path.is_dir():
        raise InvalidCacheLocationError(f"Cache file path is a directory: {path}")

    if unsafe_roots is None:
        unsafe_roots = default_unsafe_roots()

    for root in unsafe_roots:
        resolved_root = Path(root).expanduser().resolve()
        if path.is_relative_to(resolved_root):
            raise InvalidCacheLocationError(
                f"Cache file {path} must not be placed under {resolved_root}"
            )

    return path


class ConfigCache:
    """Signature-validated cache of the static configuration tree.

    Provides:
    - File signatures from path, modification time and size
    - TTL expiry (a TTL of 0 or less never expires by age)
    - Atomic, locked writes with restrictive permissions
    - Self-healing reads: invalid records are deleted and reported as misses
    """

    def __init__(
        self,
        cache_file: Union[str, Path],
        ttl: int = 60,
        unsafe_roots: Optional[Sequence[Union[str, Path]]] = None,
    ):
        """Initialize the cache.

        Args:
            cache_file: Backing file for the cache record
            ttl: Maximum record age in seconds
            unsafe_roots: Directories the cache file must not live under

        Raises:
            InvalidCacheLocationError: If the cache file location is unsafe
        """
        self.cache_file = validate_cache_location(cache_file, unsafe_roots)
        self.lock_file = self.cache_file.with_name(f"{self.cache_file.name}.lock")
        self.ttl = ttl

    @staticmethod
    def signature(tracked_files: Iterable[Union[str, Path]]) -> str:
        """Compute the signature of an ordered file list.

        Files that are missing or unreadable contribute ``"{path}|0|0"``.
        """
        parts = []
        for file in tracked_files:
            path = str(file)
            try:
                stat = os.stat(path)
            except OSError:
                stat = None

            if stat is not None and os.access(path, os.R_OK):
                parts.append(f"{path}|{stat.st_mtime_ns}|{stat.st_size}")
            else:
                parts.append(f"{path}|0|0")

        return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()

    def age(self) -> Optional[float]:
        """Seconds since the cache file was written, or None if there is none."""
        try:
            mtime = self.cache_file.stat().st_mtime
        except OSError:
            return None
        return max(0.0, time.time() - mtime)

    def get(self, tracked_files: Iterable[Union[str, Path]]) -> Optional[dict[str, Any]]:
        """Return the cached tree if it is valid for ``tracked_files``.

        An invalid record is deleted before returning None.
        """
        record = self._read_record()
        if record is None:
            return None

        reason = self._stale_reason(record, list(tracked_files))
        if reason is not None:
            self._discard(reason)
            return None

        logger.debug(f"Configuration cache hit: {self.cache_file}")
        return record.data

    def is_fresh(self, tracked_files: Iterable[Union[str, Path]]) -> bool:
        """Check validity without deleting anything."""
        record = self._read_record(discard_corrupt=False)
        if record is None:
            return False
        return self._stale_reason(record, list(tracked_files)) is None

    def put(self, tracked_files: Iterable[Union[str, Path]], data: dict[str, Any]) -> None:
        """Persist ``data`` under the current signature of ``tracked_files``.

        Raises:
            CacheWriteError: If the directory, lock or file cannot be written,
                or the payload cannot be serialized
        """
        signature = self.signature(tracked_files)
        try:
            payload = pickle.dumps(
                {
                    "schema_version": CACHE_SCHEMA_VERSION,
                    "signature": signature,
                    "data": data,
                },
                protocol=pickle.HIGHEST_PROTOCOL,
            )
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise CacheWriteError(f"Failed to serialize configuration cache: {e}") from e

        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheWriteError(
                f"Failed to create cache directory {self.cache_file.parent}: {e}"
            ) from e

        try:
            with exclusive_lock(self.lock_file):
                self._atomic_write(payload)
        except OSError as e:
            raise CacheWriteError(f"Failed to write cache file {self.cache_file}: {e}") from e

        logger.info(
            f"Wrote configuration cache {self.cache_file} ({len(data)} entries, {len(payload)} bytes)"
        )

    def clear(self) -> bool:
        """Delete the cache file.

        Returns:
            True if no cache file remains, False if it could not be removed
        """
        try:
            self.cache_file.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning(f"Failed to clear configuration cache {self.cache_file}: {e}")
            return False

        logger.info(f"Cleared configuration cache: {self.cache_file}")
        return True

    def _read_record(self, discard_corrupt: bool = True) -> Optional[CacheRecord]:
        try:
            payload = self.cache_file.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            if discard_corrupt:
                self._discard(f"unreadable ({e})")
            return None

        try:
            return CacheRecord.model_validate(pickle.loads(payload))
        except _CORRUPT_PAYLOAD_ERRORS as e:
            if discard_corrupt:
                self._discard(f"corrupt payload ({type(e).__name__})")
            return None

    def _stale_reason(
        self, record: CacheRecord, tracked_files: list[Union[str, Path]]
    ) -> Optional[str]:
        if record.signature != self.signature(tracked_files):
            return "file signature changed"

        if self.ttl > 0:
            age = self.age()
            if age is None:
                return "cache file vanished"
            if age > self.ttl:
                return f"expired ({age:.1f}s > {self.ttl}s)"

        return None

    def _discard(self, reason: str) -> None:
        logger.debug(f"Discarding configuration cache {self.cache_file}: {reason}")
        with contextlib.suppress(OSError):
            self.cache_file.unlink()

    def _atomic_write(self, payload: bytes) -> None:
        """Write the payload beside the target and rename it into place.

        Raises:
            CacheWriteError: On a short write
            OSError: If any filesystem operation fails
        """
        fd, temp_name = tempfile.mkstemp(
            dir=self.cache_file.parent,
            prefix=f".{self.cache_file.name}.",
            suffix=".tmp",
        )
        temp_path = Path(temp_name)

        try:
            try:
                written = self._write_payload(fd, payload)
                if written != len(payload):
                    raise CacheWriteError(
                        f"Short write to {temp_path}: {written} of {len(payload)} bytes"
                    )
                os.fsync(fd)
            finally:
                os.close(fd)

            os.chmod(temp_path, 0o600)
            temp_path.replace(self.cache_file)
            logger.debug(f"Atomic write completed: {self.cache_file}")

        except Exception:
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise

    @staticmethod
    def _write_payload(fd: int, payload: bytes) -> int:
        return os.write(fd, payload)
