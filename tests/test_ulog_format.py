import struct

import pytest

from trackplot.ulog_format import (
    Field,
    FormatType,
    MessageType,
    parse_format,
)


def test_message_type_codes_are_ascii_letters():
    assert MessageType.FORMAT == ord("F")
    assert MessageType.ADD_LOGGED_MSG == ord("A")
    assert MessageType(ord("B")) is MessageType.FLAG_BITS


@pytest.mark.parametrize(
    "type_name, size",
    [
        ("uint8_t", 1),
        ("int8_t", 1),
        ("uint16_t", 2),
        ("int16_t", 2),
        ("uint32_t", 4),
        ("int32_t", 4),
        ("uint64_t", 8),
        ("int64_t", 8),
        ("float", 4),
        ("double", 8),
        ("bool", 1),
        ("char", 1),
    ],
)
def test_parsed_type_sizes(type_name, size):
    fmt = parse_format(f"m:{type_name} value")
    kind = fmt.fields[0].type
    assert kind.size == size
    assert struct.calcsize("<" + kind.struct_code) == size


def test_nested_type_has_no_size():
    fmt = parse_format("m:inner_t value")
    kind = fmt.fields[0].type
    assert kind is FormatType.OTHER
    assert kind.size is None
    assert kind.struct_code is None


def test_parse_simple_format_skips_timestamp():
    fmt = parse_format("sensor:uint64_t timestamp;float x;int16_t y")
    assert fmt.name == "sensor"
    assert fmt.fields == [
        Field(FormatType.FLOAT, "x"),
        Field(FormatType.INT16, "y"),
    ]


def test_timestamp_with_other_type_is_kept():
    fmt = parse_format("m:uint32_t timestamp")
    assert [f.field_name for f in fmt.fields] == ["timestamp"]
    assert fmt.fields[0].type is FormatType.UINT32


def test_array_sizes():
    fmt = parse_format("m:float[3] q;uint8_t[12] data")
    assert [(f.type, f.array_size) for f in fmt.fields] == [
        (FormatType.FLOAT, 3),
        (FormatType.UINT8, 12),
    ]


def test_nested_types():
    fmt = parse_format("outer:inner_t[2] items;other_t single")
    first, second = fmt.fields
    assert first.type is FormatType.OTHER
    assert first.other_type_id == "inner_t"
    assert first.array_size == 2
    assert second.other_type_id == "other_t"
    assert second.array_size == 1


def test_unsigned_types_are_not_taken_for_signed():
    fmt = parse_format("m:uint8_t a;int8_t b;uint64_t c;char d;bool e;double f")
    assert [f.type for f in fmt.fields] == [
        FormatType.UINT8,
        FormatType.INT8,
        FormatType.UINT64,
        FormatType.CHAR,
        FormatType.BOOL,
        FormatType.DOUBLE,
    ]


def test_padding_field():
    fmt = parse_format("m:float x;uint8_t[3] _padding0")
    assert fmt.fields[1].is_padding
    assert not fmt.fields[0].is_padding


def test_trailing_semicolon_adds_nothing():
    assert parse_format("m:float x;") == parse_format("m:float x")


def test_empty_field_list():
    fmt = parse_format("empty:")
    assert fmt.name == "empty"
    assert fmt.fields == []


def test_missing_colon_raises():
    with pytest.raises(ValueError):
        parse_format("no colon here")


def test_field_without_name_raises():
    with pytest.raises(ValueError):
        parse_format("m:float")


def test_empty_section_raises():
    with pytest.raises(ValueError):
        parse_format("m:float x;;int8_t y")


def test_bad_array_size_raises():
    with pytest.raises(ValueError):
        parse_format("m:float[abc] x")