"""
Numeric normalization for warehouse results.

Warehouse clients hand back 64-bit counters as wide integer objects
(numpy integers, integral Decimals, or plain ints beyond the range a
double holds exactly). Charts and JSON consumers expect ordinary numbers,
so results are normalized recursively before they leave the query layer.
Values beyond the safe-integer range lose precision; that is accepted.
"""

import enum
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Callable, Dict

# Largest integer a 64-bit float represents exactly
MAX_SAFE_INTEGER = 2 ** 53 - 1


class ValueKind(enum.Enum):
    """Shape of a value as seen by the normalizer."""
    SCALAR = 'scalar'
    SEQUENCE = 'sequence'
    RECORD = 'record'


def classify(value: Any) -> ValueKind:
    """Tag a value as scalar, ordered sequence or keyed record."""
    if value is None or isinstance(value, (str, bytes, bytearray, bool, int, float, Decimal)):
        return ValueKind.SCALAR
    if isinstance(value, Mapping):
        return ValueKind.RECORD
    # Arrays define __index__ too, so iterability is checked first
    if isinstance(value, Iterable):
        return ValueKind.SEQUENCE
    if hasattr(type(value), '__index__'):
        return ValueKind.SCALAR
    if hasattr(value, '__dict__'):
        return ValueKind.RECORD
    return ValueKind.SCALAR


def _narrow_int(value: int) -> Any:
    if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
        return value
    return float(value)


def _normalize_scalar(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str, bytes, bytearray, float)):
        return value
    if isinstance(value, int):
        return _narrow_int(value)
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return _narrow_int(int(value))
        return value
    # numpy integers and similar implement __index__
    index = getattr(type(value), '__index__', None)
    if index is not None:
        try:
            return _narrow_int(index(value))
        except TypeError:
            return value
    return value


def _normalize_sequence(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    try:
        items = list(value)
    except TypeError:
        # Not really iterable after all; treat it as a plain object
        return _normalize_object(value)
    return [normalize(item) for item in items]


def _normalize_record(value: Any) -> Dict[Any, Any]:
    if isinstance(value, Mapping):
        return {key: normalize(item) for key, item in value.items()}
    return _normalize_object(value)


def _normalize_object(value: Any) -> Any:
    attributes = getattr(value, '__dict__', None)
    if attributes is None:
        return value
    return {key: normalize(item) for key, item in attributes.items()}


_VISITORS: Dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.SCALAR: _normalize_scalar,
    ValueKind.SEQUENCE: _normalize_sequence,
    ValueKind.RECORD: _normalize_record,
}


def normalize(value: Any) -> Any:
    """Recursively convert wide integers to ordinary numbers.

    None passes through; sequences and other iterables become lists
    normalized element-wise; mappings keep their keys and key order with
    every value normalized.

    Args:
        value: Any value returned by the warehouse client

    Returns:
        The same shape with wide integers converted
    """
    return _VISITORS[classify(value)](value)
