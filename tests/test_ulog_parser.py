import struct

import pytest

from trackplot.plotdata import PlotDataMap
from trackplot.ulog_format import FormatType, ULOG_MAGIC
from trackplot.ulog_parser import ULogError, ULogParser, load_ulog, log_level_name


def header(start=123):
    return ULOG_MAGIC + b"\x01" + struct.pack("<Q", start)


def msg(kind, body):
    return struct.pack("<HB", len(body), ord(kind)) + body


def fmt(text):
    return msg("F", text.encode())


def add(multi_id, msg_id, name):
    return msg("A", bytes([multi_id]) + struct.pack("<H", msg_id) + name.encode())


def data(msg_id, timestamp, payload):
    return msg("D", struct.pack("<H", msg_id) + struct.pack("<Q", timestamp) + payload)


def keyed(kind, key, value):
    return msg(kind, bytes([len(key)]) + key.encode() + value)


SENSOR = "sensor:uint64_t timestamp;float x;int16_t[2] y;uint8_t[3] _padding0"


def sensor_log(multi_id=0):
    return (
        header()
        + fmt(SENSOR)
        + add(multi_id, 1, "sensor")
        + data(1, 1000, struct.pack("<fhh", 1.5, -3, 4) + b"\0\0\0")
        + data(1, 2000, struct.pack("<fhh", 2.5, 5, 6) + b"\0\0\0")
    )


def test_wrong_magic_is_rejected():
    bad = b"XLog\x01\x12\x35\x01" + struct.pack("<Q", 0) + fmt(SENSOR) + add(0, 1, "sensor")
    with pytest.raises(ULogError, match="wrong header"):
        ULogParser(bad)


def test_too_short_file_is_rejected():
    with pytest.raises(ULogError, match="wrong header"):
        ULogParser(header())


def test_missing_subscriptions_fails_definitions():
    with pytest.raises(ULogError, match="error loading definitions"):
        ULogParser(header() + fmt(SENSOR))


def test_file_start_time_is_read():
    assert ULogParser(sensor_log()).file_start_time == 123


def test_simple_fields_and_padding():
    parser = ULogParser(sensor_log())
    series = parser.timeseries["sensor"]
    assert series.timestamps == [1000, 2000]
    assert [name for name, _ in series.data] == ["/x", "/y.00", "/y.01"]
    assert series.data[0][1] == [1.5, 2.5]
    assert series.data[1][1] == [-3.0, 5.0]
    assert series.data[2][1] == [4.0, 6.0]
    assert all(len(values) == len(series.timestamps) for _, values in series.data)


def test_multi_id_suffix():
    parser = ULogParser(sensor_log(multi_id=1))
    assert list(parser.timeseries) == ["sensor.01"]


def test_nested_formats():
    log = (
        header()
        + fmt("inner:uint64_t timestamp;float a")
        + fmt("outer:uint64_t timestamp;inner[2] b")
        + add(0, 3, "outer")
        + data(3, 50, struct.pack("<Qf", 0, 2.0) + struct.pack("<Qf", 0, 3.0))
    )
    series = ULogParser(log).timeseries["outer"]
    assert series.data == [("/b.00/a", [2.0]), ("/b.01/a", [3.0])]


def test_info_values():
    log = (
        header()
        + keyed("I", "char[5] sys_name", b"hello")
        + keyed("I", "uint32_t ver_sw_release", struct.pack("<I", 0x01020304))
        + keyed("I", "int32_t offset", struct.pack("<i", -7))
        + fmt(SENSOR)
        + add(0, 1, "sensor")
    )
    info = ULogParser(log).info
    assert info["sys_name"] == "hello"
    assert info["ver_sw_release"] == "0x01020304"
    assert info["offset"] == "-7"
    assert list(info) == sorted(info)


def test_parameters():
    log = (
        header()
        + keyed("P", "int32_t P_INT", struct.pack("<i", 5))
        + keyed("P", "float P_REAL", struct.pack("<f", 0.5))
        + fmt(SENSOR)
        + add(0, 1, "sensor")
    )
    params = ULogParser(log).parameters
    assert [(p.name, p.value, p.val_type) for p in params] == [
        ("P_INT", 5, FormatType.INT32),
        ("P_REAL", 0.5, FormatType.FLOAT),
    ]


def test_unknown_parameter_type():
    log = header() + keyed("P", "double P_X", struct.pack("<d", 1.0)) + add(0, 1, "sensor")
    with pytest.raises(ULogError, match="unknown parameter type"):
        ULogParser(log)


def test_logging_messages():
    log = sensor_log() + msg("L", b"3" + struct.pack("<Q", 777) + b"hi there")
    logs = ULogParser(log).logs
    assert [(m.level, m.timestamp, m.msg) for m in logs] == [("3", 777, "hi there")]


def test_removed_subscription_data_is_ignored():
    log = sensor_log() + msg("R", struct.pack("<H", 1)) + data(1, 3000, b"\0" * 11)
    assert ULogParser(log).timeseries["sensor"].timestamps == [1000, 2000]


def test_unknown_msg_id_is_skipped():
    log = sensor_log() + data(9, 3000, b"\0" * 11)
    assert list(ULogParser(log).timeseries) == ["sensor"]


def test_skipped_definitions():
    log = header() + msg("M", b"\x00\x03abc") + fmt(SENSOR) + add(0, 1, "sensor") + data(
        1, 1, struct.pack("<fhh", 1.0, 1, 1) + b"\0\0\0"
    )
    assert "sensor" in ULogParser(log).formats


def test_flag_bits_wrong_size():
    log = header() + msg("B", b"\0" * 10) + add(0, 1, "sensor")
    with pytest.raises(ULogError, match="FLAG_BITS"):
        ULogParser(log)


def test_flag_bits_unknown_incompat():
    body = bytes(8) + bytes([0, 1]) + bytes(6) + bytes(24)
    with pytest.raises(ULogError, match="incompat"):
        ULogParser(header() + msg("B", body) + add(0, 1, "sensor"))


def test_flag_bits_appended_offset():
    body = bytes(8) + bytes([1]) + bytes(7) + struct.pack("<3Q", 4096, 0, 0)
    parser = ULogParser(header() + msg("B", body) + fmt(SENSOR) + add(0, 1, "sensor"))
    assert parser.read_until_file_position == 4096


def test_log_level_names():
    assert log_level_name("0") == "EMERGENCY"
    assert log_level_name("4") == "WARNING"
    assert log_level_name("7") == "DEBUG"
    assert log_level_name("x") == str(ord("x"))


def test_load_ulog(tmp_path):
    path = tmp_path / "flight.ulg"
    path.write_bytes(sensor_log())
    plot_data = PlotDataMap()
    parser = load_ulog(path, plot_data)
    assert set(plot_data.numeric) == {"sensor/x", "sensor/y.00", "sensor/y.01"}
    x = plot_data.numeric["sensor/x"]
    assert [p.x for p in x] == pytest.approx([1000e-6, 2000e-6])
    assert [p.y for p in x] == [1.5, 2.5]
    assert parser.timeseries["sensor"].timestamps == [1000, 2000]


def test_load_ulog_missing_file(tmp_path):
    with pytest.raises(ULogError, match="Failed to open file"):
        load_ulog(tmp_path / "absent.ulg", PlotDataMap())