"""Smoothing filters: moving average and spike (outlier) removal."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections import deque

from trackplot.plotdata import Point
from trackplot.transforms import TimeSeriesTransform

_DEFAULT_OUTLIER_FACTOR = 100.0


def _options(parent: ET.Element) -> ET.Element:
    element = parent.find("options")
    return element if element is not None else ET.Element("options")


class MovingAverageFilter(TimeSeriesTransform):
    """Average of the last ``samples`` values of the source."""

    name = "Moving Average"

    def __init__(self, samples: int = 10, compensate_offset: bool = False) -> None:
        if samples < 1:
            raise ValueError("samples must be at least 1")
        self.samples = samples
        self.compensate_offset = compensate_offset
        self._ring: deque[Point] | None = None
        super().__init__()

    def init(self) -> None:
        self._ring = None
        super().init()

    def calculate_next_point(self, index: int) -> Point:
        size = min(self.samples, len(self.source))
        if self._ring is None or self._ring.maxlen != size:
            self._ring = deque(maxlen=size)
        point = self.source[index]
        self._ring.append(point)
        while len(self._ring) < size:
            self._ring.append(point)

        total = sum(sample.y for sample in self._ring)
        time = point.x
        if self.compensate_offset:
            time = (self._ring[-1].x + self._ring[0].x) / 2.0
        return Point(time, total / len(self._ring))

    def xml_save_state(self, parent: ET.Element) -> bool:
        options = ET.SubElement(parent, "options")
        options.set("value", str(self.samples))
        options.set("compensate_offset", "true" if self.compensate_offset else "false")
        return True

    def xml_load_state(self, parent: ET.Element) -> bool:
        options = _options(parent)
        try:
            samples = int(options.get("value", "0"))
        except ValueError:
            samples = 0
        self.samples = max(1, samples)
        self.compensate_offset = options.get("compensate_offset") == "true"
        self.init()
        return True


class OutlierRemovalFilter(TimeSeriesTransform):
    """Drops isolated spikes whose jump exceeds ``factor`` times the local range.

    The output lags the input by one sample: a point is emitted only once
    its successor is known, so the last source point is never emitted.
    """

    name = "Outlier Removal"

    def __init__(self, factor: float = _DEFAULT_OUTLIER_FACTOR) -> None:
        self.factor = factor
        self._ring: deque[float] = deque(maxlen=4)
        super().__init__()

    def init(self) -> None:
        self._ring.clear()
        super().init()

    def calculate_next_point(self, index: int) -> Point | None:
        point = self.source[index]
        self._ring.append(point.y)

        if index <= 2:
            return point
        if index == 3:
            return None

        r0, r1, r2, r3 = self._ring
        d1 = r1 - r2
        d2 = r2 - r3
        if d1 * d2 < 0:
            min_y = min(r0, r1, r3)
            max_y = max(r0, r1, r3)
            threshold = (max_y - min_y) * self.factor
            jump = max(abs(d1), abs(d2))
            if jump > threshold:
                return None
        return self.source[index - 1]

    def xml_save_state(self, parent: ET.Element) -> bool:
        options = ET.SubElement(parent, "options")
        options.set("factor", repr(self.factor))
        return True

    def xml_load_state(self, parent: ET.Element) -> bool:
        options = _options(parent)
        text = options.get("factor", options.get("value", str(_DEFAULT_OUTLIER_FACTOR)))
        try:
            self.factor = float(text)
        except ValueError:
            self.factor = 0.0
        self.init()
        return True


__all__ = ["MovingAverageFilter", "OutlierRemovalFilter"]