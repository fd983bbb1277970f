"""Configuration loader package.

Format readers for configuration files and the environment loader for the
service's own settings.
"""

from .env import EnvironmentLoader
from .file import (
    FormatReader,
    IniReader,
    JsonReader,
    PythonReader,
    ReaderRegistry,
    ReadKind,
    ReadResult,
    TomlReader,
    YamlReader,
)

__all__ = [
    "EnvironmentLoader",
    "FormatReader",
    "IniReader",
    "JsonReader",
    "PythonReader",
    "ReaderRegistry",
    "ReadKind",
    "ReadResult",
    "TomlReader",
    "YamlReader",
]
