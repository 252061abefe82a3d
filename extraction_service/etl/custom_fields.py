"""
Custom field value handling.

Custom fields arrive as arbitrary JSON: the same field can be a number on one
instance and a string on another. Values are classified into a closed set of
kinds before conversion so no shape can raise.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ValueKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    NULL = "null"
    OTHER = "other"  # objects, arrays, booleans


def classify_value(value: Any) -> ValueKind:
    """Kind of a decoded JSON value."""
    if value is None:
        return ValueKind.NULL
    # bool is an int subclass; JSON true/false is not a number
    if isinstance(value, bool):
        return ValueKind.OTHER
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    return ValueKind.OTHER


def coerce_float(value: Any, default: float = 0.0) -> Tuple[float, bool]:
    """
    Convert a loosely-typed JSON value to float.

    Returns:
        (number, valid): `valid` is False when the value could not be used, in
        which case `number` is `default`.
    """
    kind = classify_value(value)
    if kind is ValueKind.NUMBER:
        try:
            return float(value), True
        except OverflowError:
            return default, False
    if kind is ValueKind.TEXT:
        try:
            return float(value.strip()), True
        except ValueError:
            return default, False
    return default, False


def get_custom_field(fields: Dict[str, Any], field_id: Optional[str]) -> Any:
    """Value of a custom field by id from a raw `fields` object (None when unset)."""
    if not field_id or not isinstance(fields, dict):
        return None
    return fields.get(field_id)
