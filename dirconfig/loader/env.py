"""Environment variable settings loader.

Reads prefixed environment variables (``DIRCONFIG_CONFIG_DIR``,
``DIRCONFIG_CACHE__TTL``) into a nested settings dictionary with type
conversion. Used for the service's own settings only; values inside loaded
configuration files are never interpolated.
"""

import logging
import os
from collections.abc import Mapping
from typing import Any, Optional

logger = logging.getLogger(__name__)


class EnvironmentLoaderError(Exception):
    """Exception raised for environment variable errors."""

    pass


class TypeConversionError(EnvironmentLoaderError):
    """Exception raised when type conversion fails."""

    pass


class EnvironmentLoader:
    """Environment variable settings loader.

    Supports:
    - A variable name prefix
    - Nested keys through a separator (``CACHE__TTL`` -> ``cache.ttl``)
    - Schema-driven type conversion
    """

    def __init__(
        self,
        prefix: str = "DIRCONFIG_",
        nested_separator: str = "__",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize the environment loader.

        Args:
            prefix: Prefix every relevant variable starts with
            nested_separator: Separator for nested keys
            environ: Variables to read (defaults to ``os.environ``)
        """
        self.prefix = prefix
        self.nested_separator = nested_separator
        self.environ = environ if environ is not None else os.environ

        self._default_converters = {
            "str": str,
            "int": int,
            "list": self._convert_list,
        }

    def load_with_schema(self, schema: dict[str, dict[str, Any]]) -> dict[str, Any]:
        """Load environment variables according to a schema.

        Args:
            schema: Dotted settings keys mapped to ``{"type": ...}``

        Returns:
            Settings dictionary with only the variables that are set

        Raises:
            TypeConversionError: If a value cannot be converted
        """
        config: dict[str, Any] = {}

        for key, spec in schema.items():
            env_key = self._config_key_to_env_key(key)
            env_value = self.environ.get(env_key)

            if env_value is None:
                continue

            try:
                converted_value = self._convert_value_with_type(
                    env_value, spec.get("type", "str")
                )
            except (TypeError, ValueError) as e:
                raise TypeConversionError(f"Failed to convert {env_key}: {e}") from e
            self._set_nested_value(config, key, converted_value)
            logger.debug(f"Loaded env var: {env_key} -> {key}")

        return config

    def _config_key_to_env_key(self, config_key: str) -> str:
        key = config_key.replace(".", self.nested_separator)
        return f"{self.prefix}{key.upper()}"

    def _convert_value_with_type(self, value: str, value_type: str) -> Any:
        converter = self._default_converters.get(value_type)
        if converter is None:
            raise TypeConversionError(f"Unknown type: {value_type}")
        return converter(value)

    def _convert_list(self, value: str) -> list[str]:
        if not value.strip():
            return []
        return [item.strip() for item in value.split(",") if item.strip()]

    def _set_nested_value(self, config: dict[str, Any], key: str, value: Any) -> None:
        keys = key.split(".")
        current = config

        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value
