"""Shared fixtures: a virtual-clock scheduler and a wired state machine."""

from __future__ import annotations

import random
from typing import Callable

import pytest

from instantpeek.config import DisplayConfig
from instantpeek.core.state import RenderSnapshot
from instantpeek.core.state_machine import DisplayStateMachine


class ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None], seq: int) -> None:
        self._when = when
        self.callback = callback
        self.seq = seq
        self._cancelled = False
        self.fired = False

    @property
    def when(self) -> float:
        return self._when

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Deterministic scheduler: time only moves when ``advance()`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[ManualTimer] = []
        self._seq = 0

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(self._now + max(0.0, delay_s), callback, self._seq)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled() and not t.fired]

    def advance(self, dt: float) -> None:
        """Move the clock forward, firing due timers in (when, seq) order."""
        target = self._now + dt
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._now = max(self._now, timer.when)
            timer.fired = True
            timer.callback()
        self._now = target

    def advance_to(self, t: float) -> None:
        self.advance(max(0.0, t - self._now))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def cfg() -> DisplayConfig:
    """Defaults, but with the first inversion after one interval."""
    c = DisplayConfig()
    c.burn_in.inversion_start = "delayed"
    return c


@pytest.fixture
def renders() -> list[RenderSnapshot]:
    return []


@pytest.fixture
def sm(scheduler, cfg, renders) -> DisplayStateMachine:
    return DisplayStateMachine(
        scheduler, cfg, on_render=renders.append, rng=random.Random(1234)
    )
