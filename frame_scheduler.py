# frame_scheduler.py

from __future__ import annotations

import time
from typing import Callable, Optional

from PyQt5 import QtCore


DEFAULT_INTERVAL_MS = 16


class FrameScheduler:
    """Calls ``on_frame(dt)`` roughly once per display refresh."""

    def __init__(
        self,
        on_frame: Callable[[float], None],
        interval_ms: int = DEFAULT_INTERVAL_MS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.on_frame = on_frame
        self.interval_ms = int(interval_ms)
        self._clock = clock
        self._last_tick: Optional[float] = None
        self._timer: Optional[QtCore.QTimer] = None

    def next_delta(self, now: float) -> float:
        if self._last_tick is None:
            self._last_tick = now
            return 0.0
        dt = now - self._last_tick
        self._last_tick = now
        return dt

    def tick(self):
        self.on_frame(self.next_delta(self._clock()))

    def start(self, parent: QtCore.QObject = None):
        if self._timer is None:
            self._timer = QtCore.QTimer(parent)
            self._timer.timeout.connect(self.tick)
        self._last_tick = None
        self._timer.start(self.interval_ms)

    def stop(self):
        if self._timer is not None:
            self._timer.stop()

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.isActive()
