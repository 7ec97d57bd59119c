"""Typed access to fields of the decoded cargo metadata document.

Every accessor either returns a value of the requested JSON type or raises
SchemaViolationError naming the field; nothing is defaulted.
"""

from __future__ import annotations

from typing import Any

from crategraph.core.errors import SchemaViolationError


def _get(entry: str, value: Any) -> Any:
    if not isinstance(value, dict):
        return None
    return value.get(entry)


def as_array(entry: str, value: Any) -> list[Any]:
    found = _get(entry, value)
    if not isinstance(found, list):
        raise SchemaViolationError(entry, "array", value)
    return found


def as_str(entry: str, value: Any) -> str:
    found = _get(entry, value)
    if not isinstance(found, str):
        raise SchemaViolationError(entry, "string", value)
    return found


def as_object(entry: str, value: Any) -> dict[str, Any]:
    found = _get(entry, value)
    if not isinstance(found, dict):
        raise SchemaViolationError(entry, "object", value)
    return found


def item_as_str(entry: str, item: Any) -> str:
    """Check that an element of the array named ``entry`` is a string."""
    if not isinstance(item, str):
        raise SchemaViolationError(entry, "string", item)
    return item
