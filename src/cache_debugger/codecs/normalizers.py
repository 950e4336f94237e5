"""
Type normalization for JSON event payloads.

Converts cached values to JSON-safe forms so that any value a store holds can
be rendered in a structured event:
- datetime, date, time -> ISO 8601 string
- Decimal, UUID -> string
- bytes -> base64 string
- set, frozenset -> sorted list
- Enum -> its value
- objects with __dict__ -> normalized __dict__
"""

import base64
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ..exceptions import FormattingError


def _normalize_primitive_types(obj: Any) -> Any | None:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    return None


def _normalize_datetime_types(obj: Any) -> str | None:
    """Normalize datetime-related types to ISO strings."""
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    return None


def _normalize_scalar_types(obj: Any) -> Any | None:
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, Enum):
        return normalize_for_json(obj.value)
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    return None


def _normalize_collection_types(obj: Any) -> Any | None:
    """Normalize collection types recursively."""
    if isinstance(obj, (set, frozenset)):
        # Sorted by repr so mixed element types still order deterministically
        return [normalize_for_json(item) for item in sorted(obj, key=repr)]

    if isinstance(obj, (list, tuple)):
        return [normalize_for_json(item) for item in obj]

    if isinstance(obj, dict):
        return {str(key): normalize_for_json(value) for key, value in obj.items()}

    return None


def normalize_for_json(obj: Any) -> Any:
    """Normalize a Python object to JSON-serializable types.

    Args:
        obj: Value to normalize

    Returns:
        JSON-serializable equivalent of the value

    Raises:
        FormattingError: If the value has no JSON representation
    """
    result = _normalize_primitive_types(obj)
    if result is not None or obj is None:
        return result

    for strategy in (_normalize_datetime_types, _normalize_scalar_types, _normalize_collection_types):
        result = strategy(obj)
        if result is not None:
            return result

    if hasattr(obj, "__dict__"):
        return normalize_for_json(vars(obj))

    raise FormattingError(f"Object of type '{type(obj).__name__}' cannot be rendered as JSON")
