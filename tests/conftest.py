from __future__ import annotations

import pytest


class ManualClock:
    """Deterministic clock: `sleep` advances time instead of blocking."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.ms = start_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> int:
        return self.ms

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)

    def advance(self, seconds: float) -> None:
        self.ms += int(round(seconds * 1000))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store():
    from tabferry.store_persist import MemoryStore

    return MemoryStore()
