"""Time series containers and helpers to move data between collections."""

from __future__ import annotations

import bisect
import math
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Point:
    """A single sample: a time ``x`` and a value ``y`` (number or string)."""

    x: float
    y: Any


def _point_x(point: Point) -> float:
    return point.x


class PlotGroup:
    """A named group of series that shares a set of attributes."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.attributes: dict[str, Any] = {}

    def attribute(self, name: str) -> Any:
        """Return the attribute ``name``, or None when it is not set."""
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def __repr__(self) -> str:
        return f"PlotGroup({self.name!r})"


class PlotData:
    """A time series kept ordered by ``x``."""

    def __init__(self, name: str, group: PlotGroup | None = None) -> None:
        self.name = name
        self.group = group
        self.attributes: dict[str, Any] = {}
        self.maximum_range_x: float = math.inf
        self._points: list[Point] = []

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def __getitem__(self, index: int) -> Point:
        return self._points[index]

    @property
    def front(self) -> Point:
        return self._points[0]

    @property
    def back(self) -> Point:
        return self._points[-1]

    def push_back(self, point: Point) -> None:
        """Add a point, keeping the series ordered and within its x range."""
        if isinstance(point.x, float) and math.isnan(point.x):
            return
        if not self._points or point.x >= self._points[-1].x:
            self._points.append(point)
        else:
            bisect.insort(self._points, point, key=_point_x)
        if math.isfinite(self.maximum_range_x):
            cutoff = self._points[-1].x - self.maximum_range_x
            first_kept = bisect.bisect_left(self._points, cutoff, key=_point_x)
            del self._points[:first_kept]

    def clear(self) -> None:
        """Remove every point; attributes and group are kept."""
        self._points.clear()

    def attribute(self, name: str) -> Any:
        """Return the attribute ``name``, or None when it is not set."""
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def change_group(self, group: PlotGroup | None) -> None:
        self.group = group

    def index_from_x(self, x: float) -> int | None:
        """Index of the point whose x is nearest to ``x``; None if empty."""
        if not self._points:
            return None
        index = bisect.bisect_left(self._points, x, key=_point_x)
        if index >= len(self._points):
            return len(self._points) - 1
        if index > 0 and abs(self._points[index - 1].x - x) < abs(self._points[index].x - x):
            return index - 1
        return index

    def __repr__(self) -> str:
        return f"PlotData({self.name!r}, {len(self)} points)"


class PlotDataMap:
    """Numeric, string and user-defined series, indexed by identifier."""

    def __init__(self) -> None:
        self.numeric: dict[str, PlotData] = {}
        self.strings: dict[str, PlotData] = {}
        self.user_defined: dict[str, PlotData] = {}
        self.groups: dict[str, PlotGroup] = {}

    @staticmethod
    def _add(series: dict[str, PlotData], name: str, group: PlotGroup | None) -> PlotData:
        plot = series.get(name)
        if plot is None:
            plot = PlotData(name, group)
            series[name] = plot
        return plot

    def add_numeric(self, name: str, group: PlotGroup | None = None) -> PlotData:
        """Return the numeric series ``name``, creating it if needed."""
        return self._add(self.numeric, name, group)

    def add_string_series(self, name: str, group: PlotGroup | None = None) -> PlotData:
        """Return the string series ``name``, creating it if needed."""
        return self._add(self.strings, name, group)

    def get_or_create_group(self, name: str) -> PlotGroup:
        group = self.groups.get(name)
        if group is None:
            group = PlotGroup(name)
            self.groups[name] = group
        return group

    def clear(self) -> None:
        self.numeric.clear()
        self.strings.clear()
        self.user_defined.clear()
        self.groups.clear()


@dataclass
class MoveDataResult:
    """What a call to :func:`move_data` changed in the destination."""

    added_curves: list[str] = field(default_factory=list)
    curves_updated: bool = False
    data_pushed: bool = False


def move_data(source: PlotDataMap, destination: PlotDataMap, remove_older: bool) -> MoveDataResult:
    """Move every point of ``source`` into ``destination``, emptying ``source``."""
    result = MoveDataResult()
    pairs = (
        (source.numeric, destination.numeric),
        (source.strings, destination.strings),
        (source.user_defined, destination.user_defined),
    )
    for source_series, destination_series in pairs:
        for series_id, source_plot in source_series.items():
            destination_plot = destination_series.get(series_id)
            if destination_plot is None:
                result.added_curves.append(series_id)
                if source_plot.group is not None:
                    destination.get_or_create_group(source_plot.group.name)
                destination_plot = PlotData(source_plot.name)
                destination_series[series_id] = destination_plot
                result.curves_updated = True

            for name, value in source_plot.attributes.items():
                if destination_plot.attribute(name) != value:
                    destination_plot.set_attribute(name, value)
                    result.curves_updated = True

            if source_plot.group is not None:
                destination_group = destination_plot.group
                if destination_group is None or destination_group.name != source_plot.group.name:
                    destination_group = destination.get_or_create_group(source_plot.group.name)
                    destination_plot.change_group(destination_group)
                for name, value in source_plot.group.attributes.items():
                    if destination_group.attribute(name) != value:
                        destination_group.set_attribute(name, value)
                        result.curves_updated = True

            if remove_older:
                destination_plot.clear()
            if len(source_plot) > 0:
                result.data_pushed = True
            for point in source_plot:
                destination_plot.push_back(point)

            destination_plot.maximum_range_x = source_plot.maximum_range_x
            source_plot.clear()
    return result


class MonitoredValue:
    """A number that notifies subscribers whenever it really changes."""

    def __init__(self, value: float = 0.0) -> None:
        self._value = value
        self._callbacks: list[Callable[[float], None]] = []

    @property
    def value(self) -> float:
        return self._value

    def subscribe(self, callback: Callable[[float], None]) -> None:
        """Call ``callback(new_value)`` on every change."""
        self._callbacks.append(callback)

    def set(self, value: float) -> None:
        previous = self._value
        self._value = value
        if abs(value - previous) > sys.float_info.epsilon:
            for callback in self._callbacks:
                callback(value)