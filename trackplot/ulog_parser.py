"""Reader for ULog flight logs and loader of their series into a PlotDataMap."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from os import PathLike

from trackplot.plotdata import PlotDataMap, Point
from trackplot.ulog_format import (
    FILE_HEADER_LEN,
    FLAG_BITS_LEN,
    INCOMPAT_FLAG0_DATA_APPENDED_MASK,
    MSG_HEADER_LEN,
    ULOG_MAGIC,
    Format,
    FormatType,
    MessageLog,
    MessageType,
    Parameter,
    parse_format,
)

_TIMESTAMP = struct.Struct("<Q")
_MSG_HEADER = struct.Struct("<HB")
_UINT16 = struct.Struct("<H")

_INFO_CODES = {
    "bool": "?",
    "uint8_t": "B",
    "int8_t": "b",
    "uint16_t": "H",
    "int16_t": "h",
    "uint32_t": "I",
    "int32_t": "i",
    "float": "f",
    "double": "d",
    "uint64_t": "Q",
    "int64_t": "q",
}

_LOG_LEVELS = {
    "0": "EMERGENCY",
    "1": "ALERT",
    "2": "CRITICAL",
    "3": "ERROR",
    "4": "WARNING",
    "5": "NOTICE",
    "6": "INFO",
    "7": "DEBUG",
}


class ULogError(Exception):
    """The data is not a readable ULog file."""


@dataclass
class Timeseries:
    """Timestamps (µs) of one subscription and one value column per field."""

    timestamps: list[int] = field(default_factory=list)
    data: list[tuple[str, list[float]]] = field(default_factory=list)


@dataclass
class _Subscription:
    msg_id: int
    multi_id: int
    message_name: str
    format: Format | None


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


class ULogParser:
    """Parses a whole ULog file held in memory.

    After construction the results are in ``timeseries``, ``parameters``,
    ``info``, ``logs`` and ``formats``.
    """

    def __init__(self, data: bytes) -> None:
        data = bytes(data)
        self.file_start_time = 0
        self.formats: dict[str, Format] = {}
        self.info: dict[str, str] = {}
        self.parameters: list[Parameter] = []
        self.logs: list[MessageLog] = []
        self.timeseries: dict[str, Timeseries] = {}
        self.read_until_file_position = 1 << 60
        self._subscriptions: dict[int, _Subscription] = {}
        self._multi_id_names: set[str] = set()

        if not self._read_file_header(data):
            raise ULogError("ULog: wrong header")
        try:
            data_start = self._read_definitions(data)
        except (ULogError, ValueError, struct.error) as exc:
            raise ULogError(f"ULog: error loading definitions ({exc})") from exc
        self._read_data(data, data_start)

        self.timeseries = dict(sorted(self.timeseries.items()))
        self.info = dict(sorted(self.info.items()))

    # ---------------------------------------------------------------- header
    def _read_file_header(self, data: bytes) -> bool:
        if len(data) <= FILE_HEADER_LEN:
            return False
        (self.file_start_time,) = _TIMESTAMP.unpack_from(data, 8)
        return data[: len(ULOG_MAGIC)] == ULOG_MAGIC

    # ----------------------------------------------------------- definitions
    def _read_definitions(self, data: bytes) -> int:
        offset = FILE_HEADER_LEN
        while True:
            if offset + MSG_HEADER_LEN > len(data):
                raise ULogError("no logged message found")
            size, msg_type = _MSG_HEADER.unpack_from(data, offset)
            offset += MSG_HEADER_LEN
            if offset >= len(data):
                raise ULogError("unexpected end of file")
            if msg_type == MessageType.ADD_LOGGED_MSG:
                return offset - MSG_HEADER_LEN
            body = data[offset : offset + size]
            offset += size

            if msg_type == MessageType.FLAG_BITS:
                self._read_flag_bits(body, size)
            elif msg_type == MessageType.FORMAT:
                self._read_format(body)
            elif msg_type == MessageType.PARAMETER:
                self._read_parameter(body)
            elif msg_type == MessageType.INFO:
                self._read_info(body, size)
            # INFO_MULTIPLE, PARAMETER_DEFAULT and unknown types are skipped.

    def _read_flag_bits(self, body: bytes, size: int) -> None:
        if size != FLAG_BITS_LEN or len(body) < FLAG_BITS_LEN:
            raise ULogError(f"unsupported message length for FLAG_BITS message ({size})")
        incompat = body[8:16]
        appended = incompat[0] & INCOMPAT_FLAG0_DATA_APPENDED_MASK
        if incompat[0] & ~0x1 or any(incompat[1:]):
            raise ULogError("Log contains unknown incompat bits set. Refusing to parse")
        if appended:
            offsets = struct.unpack_from("<3Q", body, 16)
            if offsets[0] > 0:
                self.read_until_file_position = offsets[0]

    def _read_format(self, body: bytes) -> None:
        text = _text(body.split(b"\0", 1)[0])
        message_format = parse_format(text)
        self.formats[message_format.name] = message_format

    def _read_info(self, body: bytes, size: int) -> None:
        if not body:
            raise ULogError("empty INFO message")
        key_len = body[0]
        raw_key = _text(body[1 : 1 + key_len])
        key_parts = raw_key.split(" ")
        if len(key_parts) < 2:
            raise ULogError(f"invalid INFO key: {raw_key!r}")
        type_name, key = key_parts[0], key_parts[1]
        raw_value = body[1 + key_len : size]

        value = ""
        if type_name.startswith("char["):
            value = _text(raw_value)
        elif type_name in _INFO_CODES:
            code = "<" + _INFO_CODES[type_name]
            if len(raw_value) < struct.calcsize(code):
                raise ULogError(f"truncated INFO value for {key!r}")
            (number,) = struct.unpack_from(code, raw_value)
            if type_name == "bool":
                value = str(int(number))
            elif type_name in ("float", "double"):
                value = f"{number:f}"
            elif type_name == "uint32_t" and key.startswith("ver_") and key.endswith("_release"):
                value = f"0x{number:08x}"
            else:
                value = str(number)
        self.info.setdefault(key, value)

    def _read_parameter(self, body: bytes) -> None:
        if not body:
            raise ULogError("empty PARAMETER message")
        key_len = body[0]
        key = _text(body[1 : 1 + key_len])
        type_name, space, name = key.partition(" ")
        if not space:
            raise ULogError(f"invalid PARAMETER key: {key!r}")
        value_offset = 1 + key_len
        if type_name == "int32_t":
            (value,) = struct.unpack_from("<i", body, value_offset)
            self.parameters.append(Parameter(name, value, FormatType.INT32))
        elif type_name == "float":
            (value,) = struct.unpack_from("<f", body, value_offset)
            self.parameters.append(Parameter(name, value, FormatType.FLOAT))
        else:
            raise ULogError("unknown parameter type")

    # ------------------------------------------------------------------ data
    def _read_data(self, data: bytes, offset: int) -> None:
        while offset < len(data):
            if offset + MSG_HEADER_LEN > len(data):
                break
            size, msg_type = _MSG_HEADER.unpack_from(data, offset)
            offset += MSG_HEADER_LEN
            body = data[offset : offset + size]
            offset += size
            if len(body) < size:
                break

            if msg_type == MessageType.ADD_LOGGED_MSG:
                self._add_subscription(body)
            elif msg_type == MessageType.REMOVE_LOGGED_MSG:
                (msg_id,) = _UINT16.unpack_from(body)
                self._subscriptions.pop(msg_id, None)
            elif msg_type == MessageType.DATA:
                (msg_id,) = _UINT16.unpack_from(body)
                subscription = self._subscriptions.get(msg_id)
                if subscription is None or subscription.format is None:
                    continue
                try:
                    self._parse_data_message(subscription, body[2:])
                except (struct.error, IndexError) as exc:
                    raise ULogError(
                        f"ULog: malformed data message for {subscription.message_name!r}"
                    ) from exc
            elif msg_type == MessageType.LOGGING:
                if len(body) < 9:
                    raise ULogError("ULog: truncated LOGGING message")
                (timestamp,) = _TIMESTAMP.unpack_from(body, 1)
                self.logs.append(MessageLog(chr(body[0]), timestamp, _text(body[9:])))
            # SYNC, DROPOUT, INFO, INFO_MULTIPLE, PARAMETER_DEFAULT and
            # run-time PARAMETER changes are ignored.

    def _add_subscription(self, body: bytes) -> None:
        multi_id = body[0]
        (msg_id,) = _UINT16.unpack_from(body, 1)
        name = _text(body[3:])
        subscription = _Subscription(msg_id, multi_id, name, self.formats.get(name))
        self._subscriptions[msg_id] = subscription
        if multi_id > 0:
            self._multi_id_names.add(name)

    def _parse_data_message(self, subscription: _Subscription, message: bytes) -> None:
        ts_name = subscription.message_name
        if ts_name in self._multi_id_names:
            ts_name += f".{subscription.multi_id:02d}"

        timeseries = self.timeseries.get(ts_name)
        if timeseries is None:
            timeseries = self._create_timeseries(subscription.format)
            self.timeseries[ts_name] = timeseries

        (time_value,) = _TIMESTAMP.unpack_from(message)
        timeseries.timestamps.append(time_value)
        self._parse_simple(timeseries, subscription.format, message, _TIMESTAMP.size, 0)

    def _parse_simple(
        self, timeseries: Timeseries, message_format: Format, message: bytes, offset: int, index: int
    ) -> tuple[int, int]:
        for fmt_field in message_format.fields:
            if fmt_field.is_padding:
                offset += fmt_field.array_size
                continue
            for _ in range(fmt_field.array_size):
                if fmt_field.type is FormatType.OTHER:
                    child = self._format(fmt_field.other_type_id)
                    offset += _TIMESTAMP.size
                    offset, index = self._parse_simple(timeseries, child, message, offset, index)
                    continue
                (value,) = struct.unpack_from("<" + fmt_field.type.struct_code, message, offset)
                offset += fmt_field.type.size
                timeseries.data[index][1].append(float(value))
                index += 1
        return offset, index

    def _format(self, name: str) -> Format:
        try:
            return self.formats[name]
        except KeyError:
            raise ULogError(f"ULog: unknown format {name!r}") from None

    def _create_timeseries(self, message_format: Format) -> Timeseries:
        timeseries = Timeseries()

        def append_columns(current: Format, prefix: str) -> None:
            for fmt_field in current.fields:
                if fmt_field.is_padding:
                    continue
                new_prefix = f"{prefix}/{fmt_field.field_name}"
                for position in range(fmt_field.array_size):
                    suffix = f".{position:02d}" if fmt_field.array_size > 1 else ""
                    if fmt_field.type is FormatType.OTHER:
                        append_columns(self._format(fmt_field.other_type_id), new_prefix + suffix)
                    else:
                        timeseries.data.append((new_prefix + suffix, []))

        append_columns(message_format, "")
        return timeseries


def log_level_name(level: str | int) -> str:
    """Name of a ULog log level character; its character code when unknown."""
    if isinstance(level, int):
        level = chr(level)
    return _LOG_LEVELS.get(level, str(ord(level)))


def load_ulog(path: str | PathLike[str], plot_data: PlotDataMap) -> ULogParser:
    """Load every field of a ULog file into ``plot_data`` (time in seconds)."""
    try:
        with open(path, "rb") as stream:
            content = stream.read()
    except OSError as exc:
        raise ULogError("ULog: Failed to open file") from exc

    parser = ULogParser(content)
    for subscription_name, timeseries in parser.timeseries.items():
        for field_name, values in timeseries.data:
            series = plot_data.add_numeric(subscription_name + field_name)
            for timestamp, value in zip(timeseries.timestamps, values):
                series.push_back(Point(timestamp * 0.000001, value))
    return parser


__all__ = ["Timeseries", "ULogError", "ULogParser", "load_ulog", "log_level_name"]