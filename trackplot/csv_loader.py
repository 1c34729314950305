"""Load comma separated files into numeric time series."""

from __future__ import annotations

import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from os import PathLike

from trackplot.plotdata import PlotDataMap, Point

_QT_TOKENS = re.compile(
    r"'[^']*'|yyyy|yy|MMMM|MMM|MM|M|dddd|ddd|dd|d|hh|h|HH|H|mm|m|ss|s|zzz|z|AP|ap|A|a|."
)

_QT_TO_STRPTIME = {
    "yyyy": "%Y",
    "yy": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "M": "%m",
    "dddd": "%A",
    "ddd": "%a",
    "dd": "%d",
    "d": "%d",
    "mm": "%M",
    "m": "%M",
    "ss": "%S",
    "s": "%S",
    "zzz": "%f",
    "z": "%f",
    "AP": "%p",
    "ap": "%p",
    "A": "%p",
    "a": "%p",
}

_HOUR_TOKENS = {"hh", "h", "HH", "H"}
_AMPM_TOKENS = {"AP", "ap", "A", "a"}


class CsvError(Exception):
    """The file cannot be loaded."""


def qt_format_to_strptime(fmt: str) -> str:
    """Convert a Qt date-time format string into a ``strptime`` format."""
    tokens = _QT_TOKENS.findall(fmt)
    twelve_hour = any(token in _AMPM_TOKENS for token in tokens)
    parts = []
    for token in tokens:
        if token.startswith("'") and len(token) >= 2 and token.endswith("'"):
            literal = token[1:-1] or "'"
            parts.append(literal.replace("%", "%%"))
        elif token in _HOUR_TOKENS:
            parts.append("%I" if twelve_hour else "%H")
        elif token in _QT_TO_STRPTIME:
            parts.append(_QT_TO_STRPTIME[token])
        else:
            parts.append(token.replace("%", "%%"))
    return "".join(parts)


def _parse_number(text: str) -> float | None:
    if not text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _split(line: str) -> list[str]:
    return line.removesuffix("\n").split(",")


@dataclass
class CsvLoadResult:
    """Summary of a successful load."""

    columns: list[str]
    time_column: str | None
    rows: int
    monotonic_warning: bool = False


class CsvLoader:
    """Reads CSV files whose first line names the columns."""

    name = "DataLoad CSV"
    extensions = ("csv",)

    def __init__(self, time_axis: str = "") -> None:
        self.time_axis = time_axis

    def parse_header(self, path: str | PathLike[str]) -> tuple[list[str], int]:
        """Return the column names and the number of lines after the header."""
        with open(path, encoding="utf-8", errors="replace") as stream:
            first_line = next(stream, "")
            names = [
                item if item else f"_Column_{index}"
                for index, item in enumerate(_split(first_line))
            ]
            line_count = sum(1 for _ in stream)
        return names, line_count

    def _resolve_time_column(self, columns: list[str], time_column: str | None) -> int | None:
        if time_column is None:
            if self.time_axis and self.time_axis in columns:
                return columns.index(self.time_axis)
            return None
        if time_column == "":
            return None
        if time_column not in columns:
            raise CsvError(f"Unknown time column: {time_column}")
        self.time_axis = time_column
        return columns.index(time_column)

    def read(
        self,
        path: str | PathLike[str],
        plot_data: PlotDataMap,
        time_column: str | None = None,
        timestamp_format: str | None = None,
    ) -> CsvLoadResult:
        """Load every numeric cell of the file into ``plot_data``.

        ``time_column`` names the column used as time; None uses the stored
        ``time_axis`` when it names a column, and "" uses the row number.
        ``timestamp_format`` is a Qt date-time format used once a time cell
        is not a number.
        """
        columns, _ = self.parse_header(path)
        time_index = self._resolve_time_column(columns, time_column)
        series = [plot_data.add_numeric(name) for name in columns]

        prev_time = -sys.float_info.max
        monotonic_warning = False
        parse_as_date = False
        date_format = qt_format_to_strptime(timestamp_format) if timestamp_format else None
        rows = 0

        with open(path, encoding="utf-8", errors="replace") as stream:
            next(stream, None)
            for line in stream:
                items = _split(line)
                if len(items) != len(columns):
                    raise CsvError(
                        f"The number of values at line {rows + 1} is {len(items)},\n"
                        f"but the expected number of columns is {len(columns)}.\n"
                        "Aborting..."
                    )
                t = float(rows)
                if time_index is not None:
                    cell = items[time_index]
                    number = None if parse_as_date else _parse_number(cell)
                    if number is None:
                        parse_as_date = True
                        if date_format is None:
                            raise CsvError(
                                "One of the timestamps is not a valid number, "
                                "a timestamp format is required"
                            )
                        try:
                            t = datetime.strptime(cell, date_format).timestamp()
                        except ValueError as exc:
                            raise CsvError("Couldn't parse timestamp. Aborting.") from exc
                    else:
                        t = number

                    if t < prev_time:
                        raise CsvError(
                            "Selected time in not strictly monotonic. Loading will be aborted"
                        )
                    if t == prev_time:
                        monotonic_warning = True
                    prev_time = t

                for plot, item in zip(series, items):
                    value = _parse_number(item)
                    if value is not None:
                        plot.push_back(Point(t, value))
                rows += 1

        return CsvLoadResult(
            columns=columns,
            time_column=None if time_index is None else columns[time_index],
            rows=rows,
            monotonic_warning=monotonic_warning,
        )

    def xml_save_state(self, parent: ET.Element) -> bool:
        element = ET.SubElement(parent, "default")
        element.set("time_axis", self.time_axis)
        return True

    def xml_load_state(self, parent: ET.Element) -> bool:
        element = parent.find("default")
        if element is not None and "time_axis" in element.attrib:
            self.time_axis = element.get("time_axis", "")
            return True
        return False


__all__ = ["CsvError", "CsvLoadResult", "CsvLoader", "qt_format_to_strptime"]