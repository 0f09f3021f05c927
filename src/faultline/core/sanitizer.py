# src/faultline/core/sanitizer.py
"""Size-limiting sanitizer for breadcrumb messages and data.

Values are classified into a closed set of kinds first and then formatted
per kind, so the output is always JSON-serializable:

- PRIMITIVE: None, bool, int, float - passed through
- STRING: trimmed to max_string_length with an ellipsis
- SEQUENCE: list/tuple/set/frozenset - "<deep array>" past max_depth,
  otherwise capped at max_array_length items
- MAPPING: any Mapping - "<deep object>" past max_depth,
  "<big object>" past max_object_keys, otherwise sanitized recursively
- CLASS: a type object - "<class Name>"
- OPAQUE: everything else (instances, bytes, callables) - "<instance of Name>"
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import StrEnum
from typing import Any


class ValueKind(StrEnum):
    PRIMITIVE = "primitive"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    CLASS = "class"
    OPAQUE = "opaque"


def classify(value: Any) -> ValueKind:
    """Return the kind of a value for sanitizing purposes."""
    # bool is an int subclass; both are primitives so order does not matter here
    if value is None or isinstance(value, bool | int | float):
        return ValueKind.PRIMITIVE
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list | tuple | set | frozenset):
        return ValueKind.SEQUENCE
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, type):
        return ValueKind.CLASS
    return ValueKind.OPAQUE


class Sanitizer:
    """Trim oversized values and neutralize non-serializable ones.

    Example:
        >>> Sanitizer(max_string_length=5).sanitize({"q": "abcdefgh"})
        {'q': 'abcde…'}
    """

    def __init__(
        self,
        *,
        max_string_length: int = 200,
        max_object_keys: int = 20,
        max_depth: int = 5,
        max_array_length: int = 10,
    ) -> None:
        self.max_string_length = max_string_length
        self.max_object_keys = max_object_keys
        self.max_depth = max_depth
        self.max_array_length = max_array_length

    def sanitize(self, value: Any) -> Any:
        """Return a JSON-serializable, size-limited copy of value."""
        return self._sanitize(value, 0)

    def _sanitize(self, value: Any, depth: int) -> Any:
        match classify(value):
            case ValueKind.PRIMITIVE:
                if isinstance(value, float) and not math.isfinite(value):
                    return str(value)
                return value
            case ValueKind.STRING:
                return self._trim_string(value)
            case ValueKind.SEQUENCE:
                return self._sanitize_sequence(value, depth + 1)
            case ValueKind.MAPPING:
                return self._sanitize_mapping(value, depth + 1)
            case ValueKind.CLASS:
                return f"<class {value.__name__}>"
            case _:
                return f"<instance of {type(value).__name__}>"

    def _trim_string(self, value: str) -> str:
        if len(value) > self.max_string_length:
            return value[: self.max_string_length] + "…"
        return value

    def _sanitize_sequence(self, value: Any, depth: int) -> list[Any] | str:
        if depth > self.max_depth:
            return "<deep array>"
        items = list(value)
        overflow = len(items) - self.max_array_length
        result = [self._sanitize(item, depth) for item in items[: self.max_array_length]]
        if overflow > 0:
            result.append(f"<{overflow} more items...>")
        return result

    def _sanitize_mapping(self, value: Mapping[Any, Any], depth: int) -> dict[str, Any] | str:
        if depth > self.max_depth:
            return "<deep object>"
        if len(value) > self.max_object_keys:
            return "<big object>"
        return {str(key): self._sanitize(item, depth) for key, item in value.items()}
