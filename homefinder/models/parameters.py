"""
The running parameter map of a home search.

Every tool call argument and every tool result is merged into one
ParameterMap per search run. Keys are case-insensitive (stored lower-cased)
and values are kept in their canonical form: Decimal for numbers, str for
strings, and raw JSON text for anything else.
"""

from collections.abc import Iterator, Mapping, MutableMapping
from decimal import Decimal
from typing import Any

from homefinder import serialization


def coerce_json_value(value: Any) -> Any:
    """
    Canonicalize one parsed JSON value.

    Numbers become Decimal, strings pass through, and every other JSON shape
    (array, object, true/false, null) is kept as its JSON text.
    """
    if isinstance(value, bool):
        return serialization.dumps(value)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return value
    return serialization.dumps(value)


class ParameterMap(MutableMapping[str, Any]):
    """Case-insensitive parameter map. Keys may be overwritten, never removed."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        if data:
            self.update(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key.lower()] = value

    def __delitem__(self, key: str) -> None:
        raise TypeError(f"parameter '{key}' cannot be removed once set")

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ParameterMap({self._data!r})"

    def merge(self, values: Mapping[str, Any]) -> None:
        """Merge parsed JSON key/values, canonicalizing each value."""
        for key, value in values.items():
            self[key] = coerce_json_value(value)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)
