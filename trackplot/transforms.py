"""Single-input time series transforms: derivative, integral, scale/offset."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Sequence

from trackplot.plotdata import PlotData, Point


def estimate_sample_period(points: Sequence[Point]) -> float | None:
    """Estimate the sampling period of ``points``; None with fewer than two.

    With more than ten points the shortest and longest fifth of the
    intervals are discarded before averaging.
    """
    if len(points) < 2:
        return None
    diffs = [current.x - previous.x for previous, current in zip(points, points[1:])]
    first, last = 0, len(diffs)
    if len(points) > 10:
        diffs.sort()
        first = last // 5
        last = (last * 4) // 5
    kept = diffs[first:last]
    return sum(kept) / len(kept)


def _to_float(text: str | None) -> float:
    try:
        return float(text) if text else 0.0
    except ValueError:
        return 0.0


def _options(parent: ET.Element) -> ET.Element:
    element = parent.find("options")
    return element if element is not None else ET.Element("options")


class TimeSeriesTransform(ABC):
    """Turns one source series into a destination series, point by point."""

    name = "Transform"

    def __init__(self) -> None:
        self.source: PlotData | None = None
        self.destination = PlotData(self.name)
        self._next_index = 0

    def set_source(self, source: PlotData) -> None:
        self.source = source
        self.init()

    def init(self) -> None:
        """Forget every computed point and restart from the beginning."""
        self.destination.clear()
        self._next_index = 0

    def calculate(self) -> PlotData:
        """Process the source points not seen yet and return the destination."""
        if self.source is None:
            raise ValueError(f"{self.name}: no source series")
        if len(self.source) < self._next_index:
            self.init()
        self.destination.maximum_range_x = self.source.maximum_range_x
        for index in range(self._next_index, len(self.source)):
            point = self.calculate_next_point(index)
            if point is not None:
                self.destination.push_back(point)
        self._next_index = len(self.source)
        return self.destination

    @abstractmethod
    def calculate_next_point(self, index: int) -> Point | None:
        """Output point for source point ``index``, or None to emit nothing."""

    @abstractmethod
    def xml_save_state(self, parent: ET.Element) -> bool:
        """Store the options as an ``options`` child of ``parent``."""

    @abstractmethod
    def xml_load_state(self, parent: ET.Element) -> bool:
        """Read the options from the ``options`` child of ``parent``."""


class _PeriodTransform(TimeSeriesTransform):
    """A transform that uses either the real or a fixed sample period."""

    def __init__(self, custom_dt: float = 0.0, use_custom: bool = False) -> None:
        super().__init__()
        self.custom_dt = custom_dt
        self.use_custom = use_custom

    @property
    def dt(self) -> float:
        """Fixed period in use, or 0.0 when the real spacing is used."""
        return self.custom_dt if self.use_custom else 0.0

    def _interval(self, index: int) -> tuple[Point, Point, float] | None:
        if index == 0:
            return None
        previous = self.source[index - 1]
        current = self.source[index]
        dt = current.x - previous.x if self.dt == 0.0 else self.dt
        if dt <= 0:
            return None
        return previous, current, dt

    def _estimate_dt(self) -> float | None:
        if self.source is None:
            return None
        estimated = estimate_sample_period(list(self.source))
        if estimated is None:
            return None
        self.custom_dt = estimated
        if self.use_custom:
            self.init()
        return estimated

    def _save_period(self, parent: ET.Element) -> bool:
        options = ET.SubElement(parent, "options")
        options.set("radioChecked", "radioCustom" if self.use_custom else "radioActual")
        options.set("lineEdit", repr(self.custom_dt))
        return True

    def _load_period(self, parent: ET.Element) -> bool:
        options = _options(parent)
        self.custom_dt = _to_float(options.get("lineEdit"))
        self.use_custom = options.get("radioChecked") != "radioActual"
        return True


class FirstDerivative(_PeriodTransform):
    """Finite difference of consecutive samples."""

    name = "Derivative"

    def __init__(self, custom_dt: float = 0.0, use_custom: bool = False) -> None:
        super().__init__(custom_dt, use_custom)

    def compute_dt(self) -> float | None:
        """Estimate the period from the source and store it as ``custom_dt``."""
        return self._estimate_dt()

    def calculate_next_point(self, index: int) -> Point | None:
        interval = self._interval(index)
        if interval is None:
            return None
        previous, current, dt = interval
        return Point(previous.x, (current.y - previous.y) / dt)

    def xml_save_state(self, parent: ET.Element) -> bool:
        return self._save_period(parent)

    def xml_load_state(self, parent: ET.Element) -> bool:
        return self._load_period(parent)


class IntegralTransform(_PeriodTransform):
    """Running integral computed with the trapezoidal rule."""

    name = "Integral"

    def __init__(self, custom_dt: float = 0.0, use_custom: bool = False) -> None:
        self._accumulated = 0.0
        super().__init__(custom_dt, use_custom)

    def init(self) -> None:
        self._accumulated = 0.0
        super().init()

    def compute_dt(self) -> float | None:
        """Estimate the period from the source and store it as ``custom_dt``."""
        return self._estimate_dt()

    def calculate_next_point(self, index: int) -> Point | None:
        interval = self._interval(index)
        if interval is None:
            return None
        previous, current, dt = interval
        self._accumulated += (current.y + previous.y) * dt / 2.0
        return Point(current.x, self._accumulated)

    def xml_save_state(self, parent: ET.Element) -> bool:
        return self._save_period(parent)

    def xml_load_state(self, parent: ET.Element) -> bool:
        return self._load_period(parent)


_PI = 3.14159265359


class ScaleTransform(TimeSeriesTransform):
    """Shifts time and applies ``scale * y + offset`` to the values."""

    name = "Scale/Offset"

    def __init__(self, time_offset: float = 0.0, value_offset: float = 0.0, value_scale: float = 1.0) -> None:
        super().__init__()
        self.time_offset = time_offset
        self.value_offset = value_offset
        self.value_scale = value_scale

    def use_deg_to_rad(self) -> None:
        self.value_scale = float(f"{_PI / 180:.5g}")
        self.init()

    def use_rad_to_deg(self) -> None:
        self.value_scale = float(f"{180.0 / _PI:.5g}")
        self.init()

    def calculate_next_point(self, index: int) -> Point:
        point = self.source[index]
        return Point(point.x + self.time_offset, self.value_scale * point.y + self.value_offset)

    def xml_save_state(self, parent: ET.Element) -> bool:
        options = ET.SubElement(parent, "options")
        options.set("time_offset", repr(self.time_offset))
        options.set("value_offset", repr(self.value_offset))
        options.set("value_scale", repr(self.value_scale))
        return True

    def xml_load_state(self, parent: ET.Element) -> bool:
        options = _options(parent)
        self.time_offset = _to_float(options.get("time_offset"))
        self.value_offset = _to_float(options.get("value_offset"))
        self.value_scale = _to_float(options.get("value_scale"))
        return True


__all__ = [
    "FirstDerivative",
    "IntegralTransform",
    "ScaleTransform",
    "TimeSeriesTransform",
    "estimate_sample_period",
]