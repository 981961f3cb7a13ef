"""
JSON helpers that keep numbers as Decimal.

Tool arguments, tool results, search payloads and API responses all pass
through these two functions so coordinates and prices are never rounded
through binary floats. simplejson writes a Decimal as its exact digits.
"""

from decimal import Decimal
from typing import Any

import simplejson

JSONDecodeError = simplejson.JSONDecodeError


def loads(text: str | bytes) -> Any:
    """Parse JSON, reading every number as Decimal."""
    return simplejson.loads(text, parse_float=Decimal, parse_int=Decimal)


def dumps(value: Any) -> str:
    """Serialize to compact JSON, writing Decimal values as exact JSON numbers."""
    return simplejson.dumps(
        value, use_decimal=True, ensure_ascii=False, separators=(",", ":")
    )
