"""Settings assembly for the configuration service.

Sources in order of precedence (lowest to highest):
defaults, settings file, environment variables, explicit overrides.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from .loader.env import EnvironmentLoader, TypeConversionError
from .loader.file import ConfigurationError, ReaderRegistry
from .models.schemas import ServiceSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "DIRCONFIG_"

ENV_SCHEMA = {
    "config_dir": {"type": "str"},
    "files": {"type": "list"},
    "excluded_files": {"type": "list"},
    "cache.file": {"type": "str"},
    "cache.ttl": {"type": "int"},
    "log_level": {"type": "str"},
}


class SettingsError(ConfigurationError):
    """Exception raised when service settings are invalid."""

    pass


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _drop_none(values: Mapping[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in values.items():
        if isinstance(value, Mapping):
            nested = _drop_none(value)
            if nested:
                out[key] = nested
        elif value is not None:
            out[key] = value
    return out


def load_settings(
    settings_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ServiceSettings:
    """Build service settings from all sources.

    Args:
        settings_file: YAML, JSON, TOML or INI file with settings
        environ: Environment to read ``DIRCONFIG_*`` variables from
        overrides: Highest precedence values; ``None`` entries are ignored

    Returns:
        Validated settings

    Raises:
        SettingsError: If a source cannot be read or the result is invalid
    """
    merged: dict[str, Any] = {}

    if settings_file is not None:
        path = Path(settings_file)
        try:
            file_values = ReaderRegistry().reader_for(path).parse(path)
        except ConfigurationError as e:
            raise SettingsError(f"Failed to read settings file {path}: {e}") from e
        merged = deep_merge(merged, file_values)
        logger.debug(f"Loaded settings file {path}")

    loader = EnvironmentLoader(prefix=ENV_PREFIX, environ=environ)
    try:
        env_values = loader.load_with_schema(ENV_SCHEMA)
    except TypeConversionError as e:
        raise SettingsError(str(e)) from e
    merged = deep_merge(merged, env_values)

    if overrides:
        merged = deep_merge(merged, _drop_none(overrides))

    try:
        return ServiceSettings.model_validate(merged)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}") from e
