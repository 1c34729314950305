"""User-defined series computed from a linked source and extra channels."""

from __future__ import annotations

import math
import numbers
import sys
import threading
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from trackplot.plotdata import PlotData, PlotDataMap, Point

MAX_ADDITIONAL_SOURCES = 8


@dataclass
class SnippetData:
    """The definition of a custom function."""

    name: str = ""
    global_vars: str = ""
    function: str = ""
    linked_source: str = ""
    additional_sources: list[str] = field(default_factory=list)


def _child_text(element: ET.Element, tag: str) -> str:
    child = element.find(tag)
    return "".join(child.itertext()) if child is not None else ""


def snippet_from_xml(element: ET.Element) -> SnippetData:
    """Read one ``snippet`` element."""
    snippet = SnippetData(
        name=element.get("name", ""),
        global_vars=_child_text(element, "global").strip(),
        function=_child_text(element, "function").strip(),
        linked_source=_child_text(element, "linkedSource").strip(),
    )
    additional = element.find("additionalSources")
    if additional is not None:
        count = 1
        while (source_el := additional.find(f"v{count}")) is not None:
            snippet.additional_sources.append("".join(source_el.itertext()))
            count += 1
    return snippet


def snippets_from_xml(source: str | bytes | ET.Element) -> dict[str, SnippetData]:
    """Read every ``snippet`` child of a ``snippets`` root, sorted by name.

    Raises ValueError when the text is not well-formed XML.
    """
    if isinstance(source, ET.Element):
        root = source
    else:
        if not source:
            return {}
        try:
            root = ET.fromstring(source)
        except ET.ParseError as exc:
            raise ValueError(
                f"Failed to parse snippets (xml), error {exc} at line {exc.position[0]}"
            ) from exc
    snippets: dict[str, SnippetData] = {}
    for element in root.findall("snippet"):
        snippet = snippet_from_xml(element)
        snippets.setdefault(snippet.name, snippet)
    return dict(sorted(snippets.items()))


def snippet_to_xml(snippet: SnippetData) -> ET.Element:
    """Build the ``snippet`` element for one snippet."""
    element = ET.Element("snippet", name=snippet.name)
    ET.SubElement(element, "global").text = snippet.global_vars
    ET.SubElement(element, "function").text = snippet.function
    ET.SubElement(element, "linkedSource").text = snippet.linked_source
    if snippet.additional_sources:
        sources_el = ET.SubElement(element, "additionalSources")
        for count, curve_name in enumerate(snippet.additional_sources, start=1):
            ET.SubElement(sources_el, f"v{count}").text = curve_name
    return element


def snippets_to_xml(snippets: Mapping[str, SnippetData]) -> ET.Element:
    """Build a ``snippets`` root holding every snippet, ordered by name."""
    root = ET.Element("snippets")
    for _, snippet in sorted(snippets.items()):
        root.append(snippet_to_xml(snippet))
    return root


def export_snippets(snippets: Mapping[str, SnippetData]) -> bytes:
    """Serialise the snippets as an indented XML document."""
    root = snippets_to_xml(snippets)
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8") + b"\n"


def calc_signature(snippet: SnippetData) -> str:
    """The header of the function the snippet body is wrapped in."""
    names = ["time", "value"]
    names += [f"v{index}" for index in range(1, len(snippet.additional_sources) + 1)]
    return f"function calc({', '.join(names)})"


class CustomFunction(ABC):
    """Computes a named series from a linked source series."""

    def __init__(self, snippet: SnippetData) -> None:
        self.snippet = snippet
        self.name = snippet.name
        self.linked_plot_name = snippet.linked_source
        self.used_channels = list(snippet.additional_sources)

    def calculate_and_add(self, plot_data: PlotDataMap) -> PlotData:
        """Recompute the series inside ``plot_data``.

        A series created here is removed again if the computation fails.
        """
        newly_added = self.name not in plot_data.numeric
        destination = plot_data.add_numeric(self.name)
        destination.clear()
        try:
            self.calculate(plot_data, destination)
        except Exception:
            if newly_added:
                del plot_data.numeric[self.name]
            raise
        return destination

    def calculate(self, plot_data: PlotDataMap, destination: PlotData) -> None:
        """Append to ``destination`` the points for source samples past its end."""
        source = plot_data.numeric.get(self.linked_plot_name)
        if source is None or len(source) == 0:
            return
        destination.maximum_range_x = source.maximum_range_x

        channels = []
        for channel in self.used_channels:
            channel_data = plot_data.numeric.get(channel)
            if channel_data is None:
                raise ValueError(f"Invalid channel name: {channel}")
            channels.append(channel_data)

        last_updated = destination.back.x if len(destination) else -sys.float_info.max
        for index, point in enumerate(source):
            if point.x > last_updated:
                for new_point in self.calculate_points(source, channels, index):
                    destination.push_back(new_point)

    @abstractmethod
    def calculate_points(self, source: PlotData, channels: Sequence[PlotData], index: int) -> list[Point]:
        """Points produced for the source sample at ``index``."""

    def xml_save_state(self) -> ET.Element:
        return snippet_to_xml(self.snippet)


_RESULT_ERROR = (
    "return either a single value, two values (time, value) "
    "or an array of two-sized arrays (time, value)"
)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


class CallableCustomFunction(CustomFunction):
    """A custom function whose body is a Python callable.

    The callable receives ``(time, value, v1, ..., vN)`` and returns a number,
    a ``(time, value)`` tuple, or a sequence of ``(time, value)`` pairs.
    """

    def __init__(self, snippet: SnippetData, function: Callable[..., Any]) -> None:
        super().__init__(snippet)
        self.function = function
        self._lock = threading.Lock()

    def calculate_points(self, source: PlotData, channels: Sequence[PlotData], index: int) -> list[Point]:
        with self._lock:
            old_point = source[index]
            values = []
            for channel in channels:
                channel_index = channel.index_from_x(old_point.x)
                values.append(math.nan if channel_index is None else channel[channel_index].y)

            if len(self.snippet.additional_sources) > MAX_ADDITIONAL_SOURCES:
                raise ValueError(
                    f"maximum number of additional sources is {MAX_ADDITIONAL_SOURCES}"
                )
            result = self.function(old_point.x, old_point.y, *values)

        if _is_number(result):
            return [Point(old_point.x, float(result))]
        if isinstance(result, tuple) and len(result) == 2 and all(map(_is_number, result)):
            return [Point(float(result[0]), float(result[1]))]
        if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
            points = []
            for sample in result:
                if (
                    not isinstance(sample, Sequence)
                    or len(sample) != 2
                    or not all(map(_is_number, sample))
                ):
                    raise TypeError(_RESULT_ERROR)
                points.append(Point(float(sample[0]), float(sample[1])))
            return points
        raise TypeError(_RESULT_ERROR)


__all__ = [
    "CallableCustomFunction",
    "CustomFunction",
    "SnippetData",
    "calc_signature",
    "export_snippets",
    "snippet_from_xml",
    "snippet_to_xml",
    "snippets_from_xml",
    "snippets_to_xml",
]