"""Conversion of generic metadata into typed Qdrant payload values.

Metadata attached to a document is an arbitrary JSON-like tree. Before it is
stored it is converted into the closed ``Value`` union so that integers and
doubles keep their distinct kinds and invalid input is rejected up front
instead of being repaired.

    ╔══════════════════════════════╤═════════════════════════════════════════════╗
    ║ Python type                  │ Conversion                                  ║
    ╠══════════════════════════════╪═════════════════════════════════════════════╣
    ║ None                         │ NullValue                                   ║
    ║ bool                         │ BoolValue                                   ║
    ║ int (any numbers.Integral)   │ IntegerValue; must fit in signed 64 bits    ║
    ║ float (any numbers.Real)     │ DoubleValue; must be finite                 ║
    ║ str                          │ StringValue; must be valid UTF-8            ║
    ║ bytes, bytearray, memoryview │ StringValue; base64-encoded                 ║
    ║ Mapping[str, Any]            │ StructValue; keys must be valid UTF-8       ║
    ║ list, tuple                  │ ListValue                                   ║
    ╚══════════════════════════════╧═════════════════════════════════════════════╝

Usage::

    payload = new_value_map({
        "some_null": None,
        "some_int": 42,
        "some_bytes": b"world",
        "some_nested": {"key": "value"},
        "some_list": ["foo", 32],
    })

Base64-encoded bytes come back as plain strings on retrieval; they are not
decoded again.
"""

import base64
import math
import numbers
from collections.abc import Mapping
from typing import Any

from qdrant_bridge.errors import PayloadEncodingError, UnsupportedTypeError
from qdrant_bridge.payload.models.Value import (
    BoolValue,
    DoubleValue,
    IntegerValue,
    ListValue,
    NullValue,
    StringValue,
    StructValue,
    Value,
)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_ROOT = "$"


def new_value_map(input_map: Mapping[str, Any]) -> dict[str, Value]:
    """Convert a metadata mapping into a map of payload values.

    The conversion is all-or-nothing: the first invalid node anywhere in the
    tree aborts it and nothing is returned.

    Args:
        input_map (Mapping[str, Any]): The metadata to convert.

    Returns:
        dict[str, Value]: One payload value per key of the input.

    Raises:
        PayloadEncodingError: If a string or key is not valid UTF-8, or a number cannot be represented.
        UnsupportedTypeError: If a node has a type with no payload representation.
    """
    if not isinstance(input_map, Mapping):
        raise UnsupportedTypeError(
            f"invalid type at {_ROOT}: expected a mapping, got {type(input_map).__name__}",
            details={"path": _ROOT},
        )
    return _new_fields(input_map, _ROOT)


def new_value(v: Any) -> Value:
    """Convert a single value of any supported type into a payload value.

    Raises:
        PayloadEncodingError: If a string or key is not valid UTF-8, or a number cannot be represented.
        UnsupportedTypeError: If a node has a type with no payload representation.
    """
    return _new_value(v, _ROOT)


def _new_value(v: Any, path: str) -> Value:
    if v is None:
        return NullValue()
    # bool is an Integral, so it has to be matched first
    if isinstance(v, bool):
        return BoolValue(value=v)
    if isinstance(v, numbers.Integral):
        return _new_integer_value(int(v), path)
    if isinstance(v, numbers.Real):
        return _new_double_value(float(v), path)
    if isinstance(v, str):
        _check_utf8(v, path)
        return StringValue(value=v)
    if isinstance(v, (bytes, bytearray, memoryview)):
        return StringValue(value=base64.b64encode(bytes(v)).decode("ascii"))
    if isinstance(v, Mapping):
        return StructValue(fields=_new_fields(v, path))
    if isinstance(v, (list, tuple)):
        return ListValue(values=[_new_value(item, f"{path}[{i}]") for i, item in enumerate(v)])
    raise UnsupportedTypeError(
        f"invalid type at {path}: {type(v).__name__}",
        details={"path": path, "type": type(v).__name__},
    )


def _new_fields(v: Mapping, path: str) -> dict[str, Value]:
    fields: dict[str, Value] = {}
    for key, item in v.items():
        if not isinstance(key, str):
            raise UnsupportedTypeError(
                f"invalid key type at {path}: {type(key).__name__}, keys must be strings",
                details={"path": path, "type": type(key).__name__},
            )
        _check_utf8(key, path)
        fields[key] = _new_value(item, f"{path}.{key}")
    return fields


def _new_integer_value(v: int, path: str) -> IntegerValue:
    if not _INT64_MIN <= v <= _INT64_MAX:
        raise PayloadEncodingError(
            f"integer at {path} does not fit in 64 bits: {v}",
            details={"path": path},
        )
    return IntegerValue(value=v)


def _new_double_value(v: float, path: str) -> DoubleValue:
    if not math.isfinite(v):
        raise PayloadEncodingError(
            f"non-finite number at {path}: {v}",
            details={"path": path},
        )
    return DoubleValue(value=v)


def _check_utf8(s: str, path: str) -> None:
    try:
        s.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise PayloadEncodingError(
            f"invalid UTF-8 in string at {path}: {s!r}",
            details={"path": path},
        ) from exc
