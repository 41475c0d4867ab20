"""Bounded polling: the single waiting primitive used by every wait in the bridge.

Deadlines are measured from loop entry, not counted in iterations, so the number
of attempts depends on how long each probe takes.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


@dataclass(frozen=True, slots=True)
class PollResult:
    ok: bool
    value: Any = None
    attempts: int = 0
    elapsed_ms: int = 0
    cancelled: bool = False


def poll_until(
    probe: Callable[[], Any],
    *,
    interval_s: float,
    timeout_s: float,
    clock: Clock,
    stop: threading.Event | None = None,
) -> PollResult:
    """Call `probe` until it returns something other than None/False, or the deadline passes.

    The probe always runs at least once. Setting `stop` ends the loop early
    (the tab went away).
    """
    start = clock.now_ms()
    deadline = start + int(timeout_s * 1000)
    attempts = 0
    while True:
        if stop is not None and stop.is_set():
            return PollResult(False, None, attempts, clock.now_ms() - start, cancelled=True)
        attempts += 1
        value = probe()
        if value is not None and value is not False:
            return PollResult(True, value, attempts, clock.now_ms() - start)
        if clock.now_ms() >= deadline:
            return PollResult(False, None, attempts, clock.now_ms() - start)
        clock.sleep(interval_s)
        if clock.now_ms() >= deadline:
            return PollResult(False, None, attempts, clock.now_ms() - start)
