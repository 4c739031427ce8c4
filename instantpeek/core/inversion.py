"""Fixed-cadence NORMAL ↔ INVERTED phase toggle.

The scheduler only produces ticks; the state machine owns the phase and
flips it when the tick event is handled. No jitter or backoff: a fixed
cadence bounds the time-averaged luminance of each screen region.
"""

from __future__ import annotations

import logging
from typing import Callable

from instantpeek.config import BurnInConfig
from instantpeek.core.state import Phase
from instantpeek.core.timers import PeriodicTimer, Scheduler

log = logging.getLogger(__name__)


class InversionScheduler:
    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[], None],
        *,
        interval_s: float = 20.0,
        start: str = "immediate",
    ) -> None:
        self._timer = PeriodicTimer(scheduler, interval_s, on_tick, name="inversion")
        self.immediate = start == "immediate"

    @classmethod
    def from_config(
        cls, scheduler: Scheduler, on_tick: Callable[[], None], cfg: BurnInConfig
    ) -> InversionScheduler:
        return cls(
            scheduler,
            on_tick,
            interval_s=cfg.inversion_interval_s,
            start=cfg.inversion_start,
        )

    @property
    def running(self) -> bool:
        return self._timer.running

    @property
    def interval_s(self) -> float:
        return self._timer.interval_s

    @property
    def next_due(self) -> float | None:
        return self._timer.next_due

    def start(self) -> None:
        self._timer.start(immediate=self.immediate)
        log.info(
            "inversion: every %.1fs, first flip %s",
            self._timer.interval_s,
            "now" if self.immediate else "after one interval",
        )

    def stop(self) -> None:
        self._timer.stop()

    @staticmethod
    def flip(phase: Phase) -> Phase:
        return phase.flipped()
