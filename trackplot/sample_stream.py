"""A streamer producing synthetic sine waves, useful to exercise the tools."""

from __future__ import annotations

import math
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from trackplot.plotdata import PlotDataMap, Point

_SERIES_COUNT = 150
_COLORS = ("RED", "BLUE", "GREEN")


@dataclass(frozen=True)
class _Parameters:
    a: float
    b: float
    c: float
    d: float


class SampleStreamer:
    """Pushes ``a*sin(b*t + c) + d`` samples into many series at a fixed rate."""

    name = "Dummy Streamer"
    is_debug_plugin = True

    def __init__(self, seed: int | None = None, period: float = 0.02) -> None:
        rng = random.Random(seed)
        self.period = period
        self.data_map = PlotDataMap()
        self.lock = threading.Lock()
        self.parameters: dict[str, _Parameters] = {}
        self._callbacks: list[Callable[[], None]] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self._count = 0
        self._initial_wall = time.time()
        self._initial_perf = time.perf_counter()

        for index in range(_SERIES_COUNT):
            name = f"data_vect/{index}"
            self.parameters[name] = _Parameters(
                a=6 * rng.random() - 3,
                b=3 * rng.random(),
                c=3 * rng.random(),
                d=20 * rng.random(),
            )
            plot = self.data_map.add_numeric(name)
            if index % 5 == 0:
                plot.set_attribute("label_color", "red")

        self.data_map.add_string_series("color")

        tc_group = self.data_map.get_or_create_group("tc")
        tc_group.set_attribute("text_color", "blue")
        self.data_map.add_numeric("tc/default")
        self.data_map.add_numeric("tc/red").set_attribute("text_color", "red")

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Call ``callback()`` after each cycle pushed by the background thread."""
        self._callbacks.append(callback)

    def start(self) -> bool:
        """Push one cycle now, then keep pushing from a background thread."""
        if self._running:
            return True
        self._running = True
        self._stop.clear()
        self.push_single_cycle()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        return True

    def shutdown(self) -> None:
        self._running = False
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def push_single_cycle(self) -> None:
        """Append one sample to every series."""
        with self.lock:
            stamp = self._initial_wall + (time.perf_counter() - self._initial_perf)
            for name, param in self.parameters.items():
                value = param.a * math.sin(param.b * stamp + param.c) + param.d
                self.data_map.numeric[name].push_back(Point(stamp, value))

            color = _COLORS[(self._count // 10) % len(_COLORS)]
            self.data_map.strings["color"].push_back(Point(stamp, color))
            self.data_map.numeric["tc/default"].push_back(Point(stamp, float(self._count)))
            self.data_map.numeric["tc/red"].push_back(Point(stamp, float(self._count)))
            self._count += 1

    def _loop(self) -> None:
        while self._running:
            started = time.monotonic()
            self.push_single_cycle()
            for callback in self._callbacks:
                callback()
            remaining = started + self.period - time.monotonic()
            if remaining > 0 and self._stop.wait(remaining):
                break

    def __enter__(self) -> SampleStreamer:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()


__all__ = ["SampleStreamer"]