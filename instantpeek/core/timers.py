"""Cancellable timers.

Every scheduled action is represented by a handle; callers keep the handle
and cancel it before arming a replacement. Nothing here mutates display
state: callbacks are expected to enqueue an event and return.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """A single scheduled callback."""

    @property
    def when(self) -> float: ...

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Clock plus one-shot timers, all in seconds."""

    def now(self) -> float: ...

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop (``loop.time()`` clock).

    Must be used from the loop's own thread; cross-thread producers go
    through ``DisplayRuntime``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay_s), callback)


class PeriodicTimer:
    """Fixed-cadence self-rescheduling timer owning at most one pending handle."""

    def __init__(
        self,
        scheduler: Scheduler,
        interval_s: float,
        callback: Callable[[], None],
        *,
        name: str = "periodic",
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"{name}: interval must be positive, got {interval_s}")
        self._scheduler = scheduler
        self._interval_s = interval_s
        self._callback = callback
        self._name = name
        self._handle: TimerHandle | None = None
        self._next_due = 0.0
        self.fire_count = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def next_due(self) -> float | None:
        return self._next_due if self._handle is not None else None

    def start(self, *, immediate: bool = False) -> None:
        """(Re)start the cadence. ``immediate`` fires the first tick at t=0."""
        self.stop()
        now = self._scheduler.now()
        self._next_due = now if immediate else now + self._interval_s
        self._handle = self._scheduler.call_later(self._next_due - now, self._fire)
        log.debug("%s: started (every %.1fs, immediate=%s)", self._name, self._interval_s, immediate)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            log.debug("%s: stopped", self._name)

    def _fire(self) -> None:
        if self._handle is None:
            return
        # Re-arm first so a callback that stops the timer cancels the next tick.
        self._next_due += self._interval_s
        now = self._scheduler.now()
        if self._next_due <= now:
            self._next_due = now + self._interval_s  # fell behind; skip missed ticks
        self._handle = self._scheduler.call_later(self._next_due - now, self._fire)
        self.fire_count += 1
        self._callback()
