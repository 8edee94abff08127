"""Ticker - paces Engine.advance from a host clock."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from tick_heist.engine import Engine
    from tick_heist.run import Run

logger = logging.getLogger("tick_heist.driver")


def wall_clock_ms() -> int:
    """Wall-clock milliseconds; survives process restarts for offline progress."""
    return int(time.time() * 1000)


class Ticker:
    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], int] | None = None,
        interval_ms: int = 200,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._engine = engine
        self._clock = clock or wall_clock_ms
        self._interval_ms = interval_ms
        self._sleep = sleep or time.sleep
        self._stop_requested = False
        self._steps = 0

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def steps(self) -> int:
        return self._steps

    def request_stop(self) -> None:
        self._stop_requested = True

    def step(self) -> list[Run]:
        """Read the clock once and advance the engine to it."""
        self._steps += 1
        return self._engine.advance(self._clock())

    def run(self, n: int) -> list[Run]:
        """Advance *n* times without sleeping. Returns every completed run."""
        self._stop_requested = False
        completed: list[Run] = []
        for _ in range(n):
            completed.extend(self.step())
            if self._stop_requested:
                break
        return completed

    def run_forever(self, stop_when_idle: bool = False) -> int:
        """Advance at ``interval_ms`` until stopped. Returns steps taken."""
        self._stop_requested = False
        taken = 0
        dt = self._interval_ms / 1000
        logger.debug("Ticker started, interval %dms", self._interval_ms)
        while not self._stop_requested:
            start = time.monotonic()
            self.step()
            taken += 1
            if self._stop_requested:
                break
            if stop_when_idle and not self._engine.runs():
                break
            elapsed = time.monotonic() - start
            sleep_time = dt - elapsed
            if sleep_time > 0:
                self._sleep(sleep_time)
        logger.debug("Ticker stopped after %d steps", taken)
        return taken
