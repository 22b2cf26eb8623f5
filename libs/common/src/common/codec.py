"""Text encoding for list/object values stored in a single text column."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class FieldShape(str, Enum):
    LIST = "list"
    OBJECT = "object"

    def empty(self) -> list[Any] | dict[str, Any]:
        return [] if self is FieldShape.LIST else {}


def encode_field(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def decode_field(stored: str | None, shape: FieldShape) -> Any:
    """Decode a stored value, returning ``None`` instead of raising on bad input."""
    if stored is None or stored == "":
        return shape.empty()
    try:
        return json.loads(stored)
    except (TypeError, ValueError):
        return None


def decode_or_default(stored: str | None, shape: FieldShape) -> Any:
    decoded = decode_field(stored, shape)
    expected = list if shape is FieldShape.LIST else dict
    if not isinstance(decoded, expected):
        return shape.empty()
    return decoded
