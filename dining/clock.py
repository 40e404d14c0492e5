"""Millisecond clock shared by the philosophers of one simulation."""

from __future__ import annotations

import time
from typing import Callable

TICK_SECONDS = 0.00025


def wall_ms() -> int:
    """Return the current wall-clock time in whole milliseconds."""
    return time.time_ns() // 1_000_000


class SimulationClock:
    """Milliseconds elapsed since the first update, refreshed by ``run``."""

    def __init__(
        self,
        time_source: Callable[[], int] = wall_ms,
        tick: float = TICK_SECONDS,
    ) -> None:
        self._source = time_source
        self._tick = tick
        self._origin: int | None = None
        self._current = 0

    @property
    def current(self) -> int:
        """Milliseconds since the origin, as of the last update."""
        return self._current

    @property
    def origin(self) -> int | None:
        """Wall time of the first update, or None before it."""
        return self._origin

    def update(self) -> int:
        """Wait one tick, read the time source and return the elapsed time."""
        if self._tick > 0:
            time.sleep(self._tick)
        now = self._source()
        if self._origin is None:
            self._origin = now
        self._current = now - self._origin
        return self._current

    def run(self, keep_running: Callable[[], bool]) -> int:
        """Keep updating while ``keep_running()`` is true; return the last time."""
        while keep_running():
            self.update()
        return self._current