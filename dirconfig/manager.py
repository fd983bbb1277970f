"""Main configuration service.

Loads every configuration file in a directory into one tree keyed by file
stem. Static files are parsed once and cached; excluded (dynamic) files are
parsed on every load and override static entries with the same key.
"""

import copy
import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .loader.file import FormatReader, ReaderRegistry, ReadKind
from .models.schemas import DEFAULT_EXCLUDED_FILES, ServiceSettings
from .storage.cache import ConfigCache
from .utils.lookup import resolve

logger = logging.getLogger(__name__)


class LoadState(Enum):
    """Whether the merged tree has been computed."""

    UNLOADED = "unloaded"
    LOADED = "loaded"


class FileClass(Enum):
    """How a file in the config directory is treated."""

    STATIC = "static"
    DYNAMIC = "dynamic"
    IGNORED = "ignored"


class ConfigService:
    """Configuration interface over a directory of files.

    The first ``load()`` resolves the static tree (from the cache or by
    parsing) and locates the excluded files, and keeps both until
    ``clear_cache()`` or ``add_excluded_file()`` resets them. Excluded files
    are re-read on every ``load()`` and ``get()``, so their current content
    always wins. Callers always receive copies of the tree.
    """

    def __init__(
        self,
        config_dir: Union[str, Path],
        cache: ConfigCache,
        files: Optional[Iterable[Union[str, Path]]] = None,
        excluded_files: Iterable[str] = DEFAULT_EXCLUDED_FILES,
        readers: Optional[dict[str, FormatReader]] = None,
    ):
        """Initialize the configuration service.

        Args:
            config_dir: Directory containing configuration files
            cache: Cache for the static configuration tree
            files: Explicit static file list (scans config_dir when None)
            excluded_files: File names loaded fresh on every load, never cached
            readers: Reader overrides keyed by extension
        """
        self.config_dir = Path(config_dir)
        self._cache = cache
        self._files = list(files) if files is not None else None
        self._excluded: list[str] = []
        for name in excluded_files:
            if name.lower() not in self._excluded_lower():
                self._excluded.append(name)
        self._registry = ReaderRegistry(readers)

        self._state = LoadState.UNLOADED
        self._static: dict[str, Any] = {}
        self._dynamic_paths: list[Path] = []

    @classmethod
    def from_settings(
        cls,
        settings: ServiceSettings,
        readers: Optional[dict[str, FormatReader]] = None,
    ) -> "ConfigService":
        """Build a service and its cache from settings."""
        cache = ConfigCache(settings.cache.file, ttl=settings.cache.ttl)
        return cls(
            config_dir=settings.config_dir,
            cache=cache,
            files=settings.files,
            excluded_files=settings.excluded_files,
            readers=readers,
        )

    @property
    def cache(self) -> ConfigCache:
        return self._cache

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is LoadState.LOADED

    @property
    def excluded_files(self) -> tuple[str, ...]:
        return tuple(self._excluded)

    def load(self) -> dict[str, Any]:
        """Load the merged configuration tree.

        Returns:
            Mapping of file stem to parsed content

        Raises:
            ConfigurationError: If a static file cannot be parsed, a dynamic
                file is malformed, or the cache cannot be written
        """
        return copy.deepcopy(self._merged())

    def all(self) -> dict[str, Any]:
        """Return the merged tree, loading it if needed."""
        return self.load()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key.

        Args:
            key: Dotted key, e.g. ``"database.host"``; empty returns everything
            default: Value returned when the key is missing

        Returns:
            Configuration value or default
        """
        return copy.deepcopy(resolve(self._merged(), key, default))

    def clear_cache(self) -> None:
        """Delete the persisted cache and forget the loaded tree."""
        self._cache.clear()
        self._static = {}
        self._dynamic_paths = []
        self._state = LoadState.UNLOADED

    def add_excluded_file(self, filename: str) -> None:
        """Exclude a file from caching.

        The persisted cache may still hold the file, so it is cleared.
        """
        if filename.lower() in self._excluded_lower():
            return
        self._excluded.append(filename)
        logger.info(f"Excluded {filename} from configuration cache")
        self.clear_cache()

    def is_excluded(self, file_path: Union[str, Path]) -> bool:
        return Path(file_path).name.lower() in self._excluded_lower()

    def static_files(self) -> list[Path]:
        """Resolve the cacheable file set, in signature order."""
        if self._files is None:
            return [
                path for path in self._list_config_files() if not self.is_excluded(path)
            ]

        files = [
            path
            for path in self._normalize_file_list(self._files)
            if not self.is_excluded(path)
        ]
        # Files named explicitly must have a reader
        for path in files:
            self._registry.reader_for(path)
        return files

    def classify_files(self) -> dict[Path, FileClass]:
        """Classify every file in the config directory."""
        if not self.config_dir.is_dir():
            return {}

        static = set(self.static_files())
        result = {}
        for path in sorted(self.config_dir.iterdir()):
            if not path.is_file():
                continue
            if self.is_excluded(path) and self._registry.supports(path):
                result[path] = FileClass.DYNAMIC
            elif path in static:
                result[path] = FileClass.STATIC
            else:
                result[path] = FileClass.IGNORED
        return result

    def _excluded_lower(self) -> set[str]:
        return {name.lower() for name in self._excluded}

    def _load_static(self) -> dict[str, Any]:
        files = self.static_files()

        cached = self._cache.get(files)
        if cached is not None:
            logger.debug(f"Using cached configuration for {len(files)} files")
            return cached

        data = {}
        for path in files:
            reader = self._registry.reader_for(path)
            data[path.stem] = reader.parse(path)
            logger.debug(f"Parsed {path} ({reader.format.value})")

        self._cache.put(files, data)
        return data

    def _merged(self) -> dict[str, Any]:
        if self._state is LoadState.UNLOADED:
            static = self._load_static()
            dynamic_paths = self._find_excluded_files()
            dynamic = self._load_dynamic(dynamic_paths)

            self._static = static
            self._dynamic_paths = dynamic_paths
            self._state = LoadState.LOADED
            logger.info(
                f"Loaded static configuration from {self.config_dir} "
                f"({len(self._static)} files)"
            )
        else:
            dynamic = self._load_dynamic(self._dynamic_paths)

        merged = dict(self._static)
        merged.update(dynamic)
        return merged

    def _load_dynamic(self, paths: list[Path]) -> dict[str, Any]:
        data = {}
        for path in paths:
            if not self._registry.supports(path):
                logger.debug(f"Skipping excluded file with unsupported format: {path}")
                continue
            if not path.is_file():
                continue

            result = self._registry.reader_for(path).classify(path)
            if result.kind is ReadKind.NOT_CONFIG:
                logger.debug(f"Skipping excluded file that is not configuration: {path}")
                continue
            data[path.stem] = result.unwrap()

        return data

    def _find_excluded_files(self) -> list[Path]:
        """Locate excluded files in exclusion order, matching names case-insensitively.

        A name with no match keeps its exact path so a file created later is
        still picked up.
        """
        found = []
        listing: Optional[dict[str, Path]] = None

        for name in self._excluded:
            path = self.config_dir / name
            if path.is_file():
                found.append(path)
                continue

            if listing is None:
                listing = self._list_by_lower_name()
            found.append(listing.get(name.lower(), path))

        return found

    def _list_by_lower_name(self) -> dict[str, Path]:
        if not self.config_dir.is_dir():
            return {}
        return {
            path.name.lower(): path
            for path in sorted(self.config_dir.iterdir())
            if path.is_file()
        }

    def _normalize_file_list(self, files: list[Union[str, Path]]) -> list[Path]:
        out = []
        for entry in files:
            path = Path(entry)
            if not path.is_absolute():
                path = self.config_dir / path

            if not path.is_file():
                logger.warning(f"Configuration file not found, skipping: {path}")
                continue
            out.append(path)
        return out

    def _list_config_files(self) -> list[Path]:
        if not self.config_dir.is_dir():
            logger.warning(f"Configuration directory not found: {self.config_dir}")
            return []

        return sorted(
            path
            for path in self.config_dir.iterdir()
            if path.is_file() and self._registry.supports(path)
        )
