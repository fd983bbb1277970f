"""File-based configuration readers.

Supports reading configuration from Python, JSON, INI, YAML and TOML files.
Each reader turns one file into a mapping; the registry picks the reader for
a file from its extension.
"""

import configparser
import json
import logging
import re
import runpy
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)


class ConfigFormat(Enum):
    """Supported configuration file formats."""

    PYTHON = "py"
    JSON = "json"
    INI = "ini"
    YAML = "yaml"
    TOML = "toml"


class ConfigurationError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigNotFoundError(ConfigurationError, FileNotFoundError):
    """Exception raised when a configuration file is missing."""

    pass


class MalformedContentError(ConfigurationError):
    """Exception raised when file content cannot be decoded into a mapping."""

    pass


class UnsupportedFormatError(ConfigurationError):
    """Exception raised when no reader is registered for a file extension."""

    pass


class ReadKind(Enum):
    """Outcome of classifying a file."""

    CONFIG = "config"
    NOT_CONFIG = "not_config"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class ReadResult:
    """Result of reading a file without raising on bad content."""

    kind: ReadKind
    path: Path
    data: Optional[dict[str, Any]] = None
    error: Optional[MalformedContentError] = None

    def unwrap(self) -> dict[str, Any]:
        """Return the mapping or raise the matching error."""
        if self.kind is ReadKind.CONFIG:
            return self.data
        if self.kind is ReadKind.PARSE_ERROR:
            raise self.error
        raise MalformedContentError(
            f"Configuration file does not define a mapping: {self.path}"
        )


class FormatReader:
    """Base class for format readers.

    Subclasses implement ``_decode`` which returns whatever the file yields
    and raises ``MalformedContentError`` when the content cannot be decoded.
    """

    format: ConfigFormat

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def parse(self, path: Union[str, Path]) -> dict[str, Any]:
        """Parse a file into a mapping.

        Raises:
            ConfigNotFoundError: If the file does not exist
            MalformedContentError: If the content is not a valid mapping
        """
        return self.classify(path).unwrap()

    def classify(self, path: Union[str, Path]) -> ReadResult:
        """Read a file and report whether it holds configuration.

        Raises:
            ConfigNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigNotFoundError(f"Configuration file not found: {path}")

        try:
            value = self._decode(path)
        except MalformedContentError as e:
            return ReadResult(ReadKind.PARSE_ERROR, path, error=e)

        if not isinstance(value, Mapping):
            return ReadResult(ReadKind.NOT_CONFIG, path)
        return ReadResult(ReadKind.CONFIG, path, data=dict(value))

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            raise ConfigNotFoundError(f"Configuration file not found: {path}")
        except UnicodeDecodeError as e:
            raise MalformedContentError(f"Failed to decode {path}: {e}")
        except OSError as e:
            raise MalformedContentError(f"Failed to read file {path}: {e}")

    def _decode(self, path: Path) -> Any:
        raise NotImplementedError


class PythonReader(FormatReader):
    """Reads Python config scripts.

    The script is executed and the value bound to its module-level
    ``CONFIG`` name is the configuration. Scripts that bind no such name
    (route tables, service wiring) are not configuration files.
    """

    format = ConfigFormat.PYTHON
    variable = "CONFIG"

    def _decode(self, path: Path) -> Any:
        try:
            namespace = runpy.run_path(str(path))
        except Exception as e:
            raise MalformedContentError(f"Failed to execute {path}: {e}")
        return namespace.get(self.variable)


class JsonReader(FormatReader):
    format = ConfigFormat.JSON

    def _decode(self, path: Path) -> Any:
        content = self._read_text(path)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedContentError(f"Invalid JSON in {path}: {e}")


class YamlReader(FormatReader):
    format = ConfigFormat.YAML

    def _decode(self, path: Path) -> Any:
        content = self._read_text(path)
        try:
            return yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise MalformedContentError(f"Invalid YAML in {path}: {e}")


class TomlReader(FormatReader):
    format = ConfigFormat.TOML

    def _decode(self, path: Path) -> Any:
        content = self._read_text(path)
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            raise MalformedContentError(f"Invalid TOML in {path}: {e}")


_INT_PATTERN = re.compile(r"^[-+]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?$")

_TRUE_WORDS = {"true", "on", "yes"}
_FALSE_WORDS = {"false", "off", "no", "none"}


def coerce_ini_value(raw: str) -> Any:
    """Convert a raw INI value to bool, None, int, float or str."""
    value = raw.strip()

    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]

    lowered = value.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if lowered == "null":
        return None

    if _INT_PATTERN.match(value):
        return int(value)
    if _FLOAT_PATTERN.match(value):
        return float(value)

    return value


class IniReader(FormatReader):
    """Reads INI files with typed value scanning.

    Keys before the first section header live at the top level, every
    section becomes a nested mapping.
    """

    format = ConfigFormat.INI

    # Names configparser can never produce from a "[...]" header line.
    _ROOT_SECTION = "\x00root"
    _DEFAULT_SECTION = "\x00default"

    def _decode(self, path: Path) -> Any:
        content = self._read_text(path)

        parser = configparser.ConfigParser(
            interpolation=None,
            strict=False,
            comment_prefixes=(";", "#"),
            inline_comment_prefixes=(";",),
            default_section=self._DEFAULT_SECTION,
        )
        parser.optionxform = str

        try:
            parser.read_string(f"[{self._ROOT_SECTION}]\n{content}", source=str(path))
        except configparser.Error as e:
            raise MalformedContentError(f"Invalid INI in {path}: {e}")

        config: dict[str, Any] = {}
        for section_name in parser.sections():
            values = {
                key: coerce_ini_value(raw)
                for key, raw in parser.items(section_name, raw=True)
            }
            if section_name == self._ROOT_SECTION:
                config.update(values)
            else:
                config[section_name] = values

        return config


class ReaderRegistry:
    """Extension to reader table.

    Overrides replace or add entries for individual extensions.
    """

    def __init__(self, overrides: Optional[dict[str, FormatReader]] = None):
        yaml_reader = YamlReader()
        self._readers: dict[str, FormatReader] = {
            "py": PythonReader(),
            "json": JsonReader(),
            "ini": IniReader(),
            "yaml": yaml_reader,
            "yml": yaml_reader,
            "toml": TomlReader(),
        }

        for extension, reader in (overrides or {}).items():
            if not isinstance(reader, FormatReader):
                raise ConfigurationError(
                    f"Custom reader for .{extension} must be a FormatReader"
                )
            self._readers[self._normalize(extension)] = reader

    @staticmethod
    def _normalize(extension: str) -> str:
        return extension.lower().lstrip(".")

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(self._readers)

    def supports(self, path: Union[str, Path]) -> bool:
        return self._normalize(Path(path).suffix) in self._readers

    def reader_for(self, path: Union[str, Path]) -> FormatReader:
        """Return the reader registered for a file's extension.

        Raises:
            UnsupportedFormatError: If no reader handles the extension
        """
        suffix = Path(path).suffix
        try:
            return self._readers[self._normalize(suffix)]
        except KeyError:
            raise UnsupportedFormatError(f"Unsupported file format: {suffix or path}")
