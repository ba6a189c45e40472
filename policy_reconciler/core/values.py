"""
Value typing rules shared by the router and the reconciliation engine.

Native stores hand back loosely typed data (a REG_DWORD for a boolean,
a plist integer for a flag). Decoding always goes through the policy's
declared ValueType. Comparison against baseline values is strict on type.
"""

from typing import Any

from ..exceptions import MalformedValueError, PolicyValueError
from .models import ValueType


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}

_PYTHON_TYPES = {
    ValueType.BOOL: "bool",
    ValueType.INT: "int",
    ValueType.FLOAT: "float",
    ValueType.STRING: "str",
    ValueType.BINARY: "bytes",
}


def value_kind(value: Any) -> str:
    """Type category of a value; bool, int and float are all distinct."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    return type(value).__name__


def values_equal(current: Any, expected: Any) -> bool:
    """Exact comparison: same type category and equal value."""
    if value_kind(current) != value_kind(expected):
        return False
    return current == expected


def decode_native(value_type: ValueType, raw: Any) -> Any:
    """
    Convert a raw value from a provider into the declared type.

    Args:
        value_type: Declared type of the policy
        raw: Value as returned by the provider adapter

    Returns:
        Any: Value as a bool, int, float, str or bytes

    Raises:
        MalformedValueError: If the raw value cannot represent the type
    """
    try:
        if value_type == ValueType.BOOL:
            return _decode_bool(raw)
        if value_type == ValueType.INT:
            if isinstance(raw, bool):
                return int(raw)
            if isinstance(raw, float) and not raw.is_integer():
                raise ValueError(f"non-integral number {raw}")
            return int(raw)
        if value_type == ValueType.FLOAT:
            if isinstance(raw, bool):
                raise ValueError("boolean is not a number")
            return float(raw)
        if value_type == ValueType.STRING:
            if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
                return str(raw)
            raise ValueError(f"cannot read {value_kind(raw)} as string")
        if value_type == ValueType.BINARY:
            if isinstance(raw, (bytes, bytearray)):
                return bytes(raw)
            if isinstance(raw, list):
                return bytes(raw)
            raise ValueError(f"cannot read {value_kind(raw)} as binary")
    except (TypeError, ValueError) as e:
        raise MalformedValueError(f"Cannot decode {raw!r} as {value_type.value}: {e}")

    raise MalformedValueError(f"Unsupported value type: {value_type}")


def _decode_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{raw!r} is not a boolean")


def normalize_expected(value_type: ValueType, value: Any) -> Any:
    """
    Prepare a baseline value for comparison.

    JSON has no binary type, so hex strings are accepted for binary
    policies. Every other value is returned unchanged.
    """
    if value_type == ValueType.BINARY and isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError:
            return value
    return value


def check_value(value_type: ValueType, value: Any) -> Any:
    """
    Validate a value about to be written.

    Returns the value in its canonical form.

    Raises:
        PolicyValueError: If the value's type does not match the declared type
    """
    value = normalize_expected(value_type, value)
    if isinstance(value, bytearray):
        value = bytes(value)

    expected_kind = _PYTHON_TYPES[value_type]
    if value_kind(value) != expected_kind:
        raise PolicyValueError(
            f"Expected a {value_type.value} value, got {value_kind(value)} {value!r}"
        )
    return value


def parse_text(value_type: ValueType, text: str) -> Any:
    """Parse command line text into the declared type."""
    try:
        if value_type == ValueType.BOOL:
            return _decode_bool(text)
        if value_type == ValueType.INT:
            return int(text, 0)
        if value_type == ValueType.FLOAT:
            return float(text)
        if value_type == ValueType.BINARY:
            return bytes.fromhex(text)
    except ValueError as e:
        raise PolicyValueError(f"Cannot parse '{text}' as {value_type.value}: {e}")
    return text
