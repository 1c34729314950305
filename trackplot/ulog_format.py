"""ULog message types, field definitions and the parser for format strings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag

ULOG_MAGIC = b"ULog\x01\x12\x35"
"""First seven bytes of every ULog file; the eighth is the version."""

FILE_HEADER_LEN = 16
"""Magic (8 bytes) followed by the start timestamp (uint64)."""

MSG_HEADER_LEN = 3
"""Message size (uint16) followed by the message type (uint8)."""

FLAG_BITS_LEN = 40
INCOMPAT_FLAG0_DATA_APPENDED_MASK = 1 << 0
COMPAT_FLAG0_DEFAULT_PARAMETERS_MASK = 1 << 0

PADDING_PREFIX = "_padding"


class MessageType(IntEnum):
    """The one-byte type code in front of every message."""

    FORMAT = ord("F")
    DATA = ord("D")
    INFO = ord("I")
    INFO_MULTIPLE = ord("M")
    PARAMETER = ord("P")
    PARAMETER_DEFAULT = ord("Q")
    ADD_LOGGED_MSG = ord("A")
    REMOVE_LOGGED_MSG = ord("R")
    SYNC = ord("S")
    DROPOUT = ord("O")
    LOGGING = ord("L")
    LOGGING_TAGGED = ord("C")
    FLAG_BITS = ord("B")


class ParameterDefaultType(IntFlag):
    """Which defaults a PARAMETER_DEFAULT message refers to."""

    SYSTEM = 1 << 0
    CURRENT_SETUP = 1 << 1


class FormatType(Enum):
    """The type of one field of a message format."""

    UINT8 = "uint8_t"
    UINT16 = "uint16_t"
    UINT32 = "uint32_t"
    UINT64 = "uint64_t"
    INT8 = "int8_t"
    INT16 = "int16_t"
    INT32 = "int32_t"
    INT64 = "int64_t"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL = "bool"
    CHAR = "char"
    OTHER = "other"

    @property
    def struct_code(self) -> str | None:
        """The ``struct`` code of the type, or None for a nested format."""
        return _STRUCT_CODES.get(self)

    @property
    def size(self) -> int | None:
        """Size in bytes, or None for a nested format."""
        return _SIZES.get(self)


_STRUCT_CODES = {
    FormatType.UINT8: "B",
    FormatType.UINT16: "H",
    FormatType.UINT32: "I",
    FormatType.UINT64: "Q",
    FormatType.INT8: "b",
    FormatType.INT16: "h",
    FormatType.INT32: "i",
    FormatType.INT64: "q",
    FormatType.FLOAT: "f",
    FormatType.DOUBLE: "d",
    FormatType.BOOL: "?",
    FormatType.CHAR: "b",
}

_SIZES = {
    FormatType.UINT8: 1,
    FormatType.UINT16: 2,
    FormatType.UINT32: 4,
    FormatType.UINT64: 8,
    FormatType.INT8: 1,
    FormatType.INT16: 2,
    FormatType.INT32: 4,
    FormatType.INT64: 8,
    FormatType.FLOAT: 4,
    FormatType.DOUBLE: 8,
    FormatType.BOOL: 1,
    FormatType.CHAR: 1,
}

# Checked in this order: the first prefix that matches wins.
_TYPE_PREFIXES = (
    FormatType.INT8,
    FormatType.INT16,
    FormatType.INT32,
    FormatType.INT64,
    FormatType.UINT8,
    FormatType.UINT16,
    FormatType.UINT32,
    FormatType.UINT64,
    FormatType.DOUBLE,
    FormatType.FLOAT,
    FormatType.BOOL,
    FormatType.CHAR,
)

_ARRAY_SUFFIX = re.compile(r"\[(\d+)\]")


@dataclass
class Field:
    """One field of a message format."""

    type: FormatType
    field_name: str = ""
    other_type_id: str = ""
    array_size: int = 1

    @property
    def is_padding(self) -> bool:
        return self.field_name.startswith(PADDING_PREFIX)


@dataclass
class Format:
    """A named message layout: the ordered list of its fields."""

    name: str
    fields: list[Field] = field(default_factory=list)
    padding: int = 0


@dataclass
class Parameter:
    """A parameter value stored in the definitions section."""

    name: str
    value: int | float
    val_type: FormatType


@dataclass
class MessageLog:
    """A logged text message with its level character and timestamp (µs)."""

    level: str
    timestamp: int
    msg: str


def _split(text: str, delimiter: str) -> list[str]:
    """Split like the log tools do: a trailing delimiter adds no empty part."""
    if not text:
        return []
    parts = text.split(delimiter)
    if text.endswith(delimiter):
        parts.pop()
    return parts


def _parse_field(section: str) -> Field:
    pair = _split(section, " ")
    if len(pair) < 2:
        raise ValueError(f"invalid field definition: {section!r}")
    type_text, name = pair[0], pair[1]

    for candidate in _TYPE_PREFIXES:
        if type_text.startswith(candidate.value):
            result = Field(candidate)
            remainder = type_text[len(candidate.value):]
            break
    else:
        result = Field(FormatType.OTHER)
        if type_text.endswith("]"):
            bracket = type_text.rfind("[")
            if bracket < 0:
                raise ValueError(f"invalid array type: {type_text!r}")
            result.other_type_id = type_text[:bracket]
            remainder = type_text[bracket:]
        else:
            result.other_type_id = type_text
            remainder = ""

    if remainder.startswith("["):
        match = _ARRAY_SUFFIX.match(remainder)
        if match is None:
            raise ValueError(f"invalid array size: {type_text!r}")
        result.array_size = int(match.group(1))

    result.field_name = name
    return result


def parse_format(text: str) -> Format:
    """Parse a FORMAT message body such as ``"name:uint64_t timestamp;float x"``.

    The ``uint64_t timestamp`` field is left out, since every data message
    carries it in front of the other fields. Raises ValueError when the
    text is not a valid format definition.
    """
    name, colon, fields_text = text.partition(":")
    if not colon:
        raise ValueError(f"format definition without ':': {text!r}")

    message_format = Format(name)
    for section in _split(fields_text, ";"):
        parsed = _parse_field(section)
        if parsed.type is FormatType.UINT64 and parsed.field_name == "timestamp":
            continue
        message_format.fields.append(parsed)
    return message_format


__all__ = [
    "COMPAT_FLAG0_DEFAULT_PARAMETERS_MASK",
    "FILE_HEADER_LEN",
    "FLAG_BITS_LEN",
    "INCOMPAT_FLAG0_DATA_APPENDED_MASK",
    "MSG_HEADER_LEN",
    "PADDING_PREFIX",
    "ULOG_MAGIC",
    "Field",
    "Format",
    "FormatType",
    "MessageLog",
    "MessageType",
    "Parameter",
    "ParameterDefaultType",
    "parse_format",
]