"""Cooperative timers for the single-threaded display loop.

Every periodic behaviour (ad rotation, scroll frames, quiet-hours re-poll,
banner hide, settle delay) goes through a Scheduler, so components never
touch the event loop directly and tests can drive time by hand.

A component that owns a timer chain keeps it in a TimerSlot. Setting a slot
cancels whatever it held, so one resource can never have two chains running.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """What components need from the event loop."""

    def now(self) -> float:
        """Monotonic seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle: ...

    def request_frame(self, callback: Callable[[float], None]) -> TaskHandle:
        """Run callback on the next animation frame with the frame time in seconds."""
        ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop.

    Animation frames are plain timers at ``frame_interval``; the callback
    receives ``loop.time()`` at the moment the frame fires.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        frame_interval: float = 1 / 60,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self.frame_interval = frame_interval

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        return self._loop.call_later(max(0.0, delay), callback)

    def request_frame(self, callback: Callable[[float], None]) -> TaskHandle:
        return self._loop.call_later(
            self.frame_interval, lambda: callback(self._loop.time())
        )


class TimerSlot:
    """Holds at most one pending timer or frame callback.

    ``set`` and ``frame`` cancel the previous handle before scheduling, and
    the slot empties itself when its callback fires.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TaskHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def set(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(delay, fire)

    def frame(self, callback: Callable[[float], None]) -> None:
        self.cancel()

        def fire(timestamp: float) -> None:
            self._handle = None
            callback(timestamp)

        self._handle = self._scheduler.request_frame(fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
