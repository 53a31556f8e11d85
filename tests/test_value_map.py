"""Metadata → typed payload value conversion."""

import base64
from decimal import Decimal
from fractions import Fraction

import pytest
from pydantic import TypeAdapter

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
from qdrant_bridge.payload.value_map import new_value, new_value_map


def test_mixed_map_converts_to_expected_kinds():
    result = new_value_map({
        "some_null": None,
        "some_bool": True,
        "some_int": 42,
        "some_float": 1.5,
        "some_string": "hello",
        "some_bytes": b"world",
        "some_nested": {"key": "value"},
        "some_list": ["foo", 32],
    })

    assert result == {
        "some_null": NullValue(),
        "some_bool": BoolValue(value=True),
        "some_int": IntegerValue(value=42),
        "some_float": DoubleValue(value=1.5),
        "some_string": StringValue(value="hello"),
        "some_bytes": StringValue(value="d29ybGQ="),
        "some_nested": StructValue(fields={"key": StringValue(value="value")}),
        "some_list": ListValue(values=[StringValue(value="foo"), IntegerValue(value=32)]),
    }


def test_empty_map():
    assert new_value_map({}) == {}


def test_json_native_tree_is_isomorphic():
    tree = {
        "title": "Report",
        "year": 2024,
        "ratio": 0.25,
        "draft": False,
        "owner": None,
        "tags": ["a", "b", ["nested", 1, {"deep": [True, None]}]],
        "author": {"name": "Ada", "ids": [1, 2, 3], "address": {"city": "Berlin"}},
    }

    result = StructValue(fields=new_value_map(tree))

    assert result.to_json() == tree


def test_bool_is_not_an_integer():
    assert new_value(True) == BoolValue(value=True)
    assert new_value(False) == BoolValue(value=False)
    assert new_value(1) == IntegerValue(value=1)


def test_integer_and_double_stay_distinct():
    assert new_value(3) == IntegerValue(value=3)
    assert new_value(3.0) == DoubleValue(value=3.0)


@pytest.mark.parametrize("value", [2**63 - 1, -(2**63), 0])
def test_integer_within_int64(value):
    assert new_value(value) == IntegerValue(value=value)


@pytest.mark.parametrize("value", [2**63, -(2**63) - 1, 10**30])
def test_integer_outside_int64_is_rejected(value):
    with pytest.raises(PayloadEncodingError) as exc_info:
        new_value_map({"big": value})

    assert not isinstance(exc_info.value, UnsupportedTypeError)
    assert exc_info.value.details["path"] == "$.big"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_double_is_rejected(value):
    with pytest.raises(PayloadEncodingError, match="non-finite"):
        new_value_map({"score": value})


def test_other_real_numbers_become_doubles():
    assert new_value(Fraction(1, 4)) == DoubleValue(value=0.25)


def test_tuple_becomes_list():
    assert new_value((1, "two")) == ListValue(values=[IntegerValue(value=1), StringValue(value="two")])


@pytest.mark.parametrize("raw", [b"\x00\xffbinary", bytearray(b"\x00\xffbinary"), memoryview(b"\x00\xffbinary")])
def test_bytes_like_values_are_base64_encoded(raw):
    result = new_value(raw)

    assert isinstance(result, StringValue)
    assert base64.b64decode(result.value) == b"\x00\xffbinary"


def test_empty_bytes():
    assert new_value(b"") == StringValue(value="")


def test_unicode_strings_are_kept():
    assert new_value("Grüße 👋") == StringValue(value="Grüße 👋")


def test_invalid_utf8_string_reports_its_path():
    with pytest.raises(PayloadEncodingError) as exc_info:
        new_value_map({"tags": ["ok", "fine", "bad \ud800"]})

    err = exc_info.value
    assert not isinstance(err, UnsupportedTypeError)
    assert err.code == "ENCODING_ERROR"
    assert err.details["path"] == "$.tags[2]"
    assert "$.tags[2]" in str(err)


def test_invalid_utf8_key_is_rejected():
    with pytest.raises(PayloadEncodingError):
        new_value_map({"outer": {"bad \udfff": 1}})


def test_invalid_utf8_deep_inside_fails_whole_conversion():
    metadata = {"a": 1, "b": {"c": [{"d": "\ud800"}]}, "z": 2}

    with pytest.raises(PayloadEncodingError) as exc_info:
        new_value_map(metadata)

    assert exc_info.value.details["path"] == "$.b.c[0].d"


@pytest.mark.parametrize("value", [object(), {1, 2}, 1 + 2j, Decimal("1.5"), len])
def test_unsupported_leaf_types(value):
    with pytest.raises(UnsupportedTypeError, match="invalid type") as exc_info:
        new_value_map({"nested": {"leaf": value}})

    err = exc_info.value
    assert err.code == "UNSUPPORTED_TYPE"
    assert err.details["path"] == "$.nested.leaf"
    assert isinstance(err, TypeError)


def test_non_string_key_is_unsupported():
    with pytest.raises(UnsupportedTypeError) as exc_info:
        new_value_map({"ok": {1: "one"}})

    assert exc_info.value.details == {"path": "$.ok", "type": "int"}


def test_top_level_must_be_a_mapping():
    with pytest.raises(UnsupportedTypeError):
        new_value_map(["not", "a", "map"])


def test_values_validate_through_discriminator():
    adapter = TypeAdapter(Value)

    value = adapter.validate_python({
        "kind": "struct",
        "fields": {
            "n": {"kind": "integer", "value": 7},
            "l": {"kind": "list", "values": [{"kind": "null"}, {"kind": "double", "value": 0.5}]},
        },
    })

    assert value == StructValue(fields={
        "n": IntegerValue(value=7),
        "l": ListValue(values=[NullValue(), DoubleValue(value=0.5)]),
    })
    assert value.to_json() == {"n": 7, "l": [None, 0.5]}
