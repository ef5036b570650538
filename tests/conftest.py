"""Shared fixtures: a hand-driven scheduler, a fake wall clock and a push store."""

import heapq
from collections.abc import Callable
from datetime import datetime, timedelta
from itertools import count

import pytest

from src.signage.config import SignageConfig
from src.signage.surface import MemorySurface

# Thursday
BASE_TIME = datetime(2024, 3, 14, 9, 0, 0)


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose time only moves when a test calls advance()."""

    def __init__(self, frame_interval: float = 0.1) -> None:
        self.time = 0.0
        self.frame_interval = frame_interval
        self._queue: list = []
        self._seq = count()

    def now(self) -> float:
        return self.time

    def call_later(self, delay, callback) -> ManualHandle:
        handle = ManualHandle()
        heapq.heappush(self._queue, (self.time + max(0.0, delay), next(self._seq), handle, callback))
        return handle

    def request_frame(self, callback) -> ManualHandle:
        return self.call_later(self.frame_interval, lambda: callback(self.time))

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.time = max(self.time, when)
            callback()
        self.time = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)


class FakeClock:
    """Wall clock that follows the manual scheduler from a fixed start."""

    def __init__(self, scheduler: ManualScheduler, start: datetime = BASE_TIME) -> None:
        self.scheduler = scheduler
        self.start = start

    def __call__(self) -> datetime:
        return self.start + timedelta(seconds=self.scheduler.time)


class FakeStore:
    """DocumentStore the test pushes snapshots through."""

    def __init__(self) -> None:
        self.settings_subs: list[dict] = []
        self.daily_subs: list[dict] = []

    def _add(self, subs: list[dict], **entry) -> Callable[[], None]:
        entry["active"] = True
        subs.append(entry)

        def unsubscribe() -> None:
            entry["active"] = False

        return unsubscribe

    def subscribe_settings(self, on_data, on_error):
        return self._add(self.settings_subs, on_data=on_data, on_error=on_error)

    def subscribe_daily_data(self, range_start, on_data, on_error):
        return self._add(
            self.daily_subs, range_start=range_start, on_data=on_data, on_error=on_error
        )

    def active(self, subs: list[dict]) -> list[dict]:
        return [s for s in subs if s["active"]]

    def push_settings(self, settings) -> None:
        for sub in self.active(self.settings_subs):
            sub["on_data"](settings)

    def push_daily(self, documents) -> None:
        for sub in self.active(self.daily_subs):
            sub["on_data"](documents)

    def fail_settings(self, error: Exception) -> None:
        for sub in self.active(self.settings_subs):
            sub["on_error"](error)

    def fail_daily(self, error: Exception) -> None:
        for sub in self.active(self.daily_subs):
            sub["on_error"](error)


class FakeAudio:
    """AudioBackend that records tones instead of playing them."""

    def __init__(self, unlockable: bool = True, fail_play: bool = False) -> None:
        self.state = "suspended"
        self.unlockable = unlockable
        self.fail_play = fail_play
        self.played: list[tuple] = []

    def resume(self) -> None:
        if self.unlockable:
            self.state = "running"

    def play(self, steps, gain, duration) -> None:
        if self.fail_play:
            raise RuntimeError("device busy")
        self.played.append((tuple(steps), gain, duration))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock(scheduler) -> FakeClock:
    return FakeClock(scheduler)


@pytest.fixture
def surface() -> MemorySurface:
    return MemorySurface()


@pytest.fixture
def config() -> SignageConfig:
    return SignageConfig(frame_interval=0.1, log_level="DEBUG")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
