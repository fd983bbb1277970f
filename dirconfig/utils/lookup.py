"""Dotted-path access into nested configuration mappings."""

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def resolve(tree: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look up a dotted key such as ``"database.host"`` in a nested mapping.

    An empty key returns the whole tree. Each segment is a mapping key; list
    indices are not supported.

    Args:
        tree: Nested mapping to search
        key: Dot separated key
        default: Value returned when any segment is missing

    Returns:
        The value found or ``default``
    """
    if not key:
        return tree

    cursor: Any = tree
    for segment in key.split("."):
        if isinstance(cursor, Mapping) and segment in cursor:
            cursor = cursor[segment]
        else:
            return default
    return cursor


def has(tree: Mapping[str, Any], key: str) -> bool:
    """Check whether a dotted key exists in a nested mapping."""
    return resolve(tree, key, _MISSING) is not _MISSING
