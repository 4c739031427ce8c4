"""Wake → idle brightness controller.

Two levels (DIM, FULL) plus a deadline. ``wake()`` is the only path that
arms the revert timer and always cancels the previous one first, so there
is never more than one pending revert. Each armed timer carries a token;
a firing whose token is no longer current is ignored.
"""

from __future__ import annotations

import logging
from typing import Callable

from instantpeek.config import BrightnessConfig
from instantpeek.core.state import BrightnessLevel, BrightnessState
from instantpeek.core.timers import Scheduler, TimerHandle

log = logging.getLogger(__name__)


class BrightnessController:
    def __init__(
        self,
        scheduler: Scheduler,
        on_revert_due: Callable[[int], None],
        *,
        dim: float = 0.2,
        full: float = 1.0,
        peek_duration_s: float = 10.0,
    ) -> None:
        self._scheduler = scheduler
        self._on_revert_due = on_revert_due
        self.dim = dim
        self.full = full
        self.peek_duration_s = peek_duration_s

        self._state = BrightnessState(BrightnessLevel.DIM, dim, None)
        self._pending: TimerHandle | None = None
        self._token = 0
        self.last_wake: float | None = None
        self.revert_count = 0

    @classmethod
    def from_config(
        cls,
        scheduler: Scheduler,
        on_revert_due: Callable[[int], None],
        cfg: BrightnessConfig,
    ) -> BrightnessController:
        return cls(
            scheduler,
            on_revert_due,
            dim=cfg.dim,
            full=cfg.full,
            peek_duration_s=cfg.peek_duration_s,
        )

    # ── Queries ──────────────────────────────────────────────────

    @property
    def state(self) -> BrightnessState:
        return BrightnessState(self._state.level, self._state.value, self._state.wake_until)

    @property
    def level(self) -> BrightnessLevel:
        return self._state.level

    @property
    def is_full(self) -> bool:
        return self._state.level is BrightnessLevel.FULL

    @property
    def wake_until(self) -> float | None:
        return self._state.wake_until

    @property
    def pending(self) -> TimerHandle | None:
        return self._pending

    @property
    def token(self) -> int:
        return self._token

    def current_level(self) -> float:
        return self._state.value

    # ── Transitions ──────────────────────────────────────────────

    def wake(self, now: float, reason: str = "") -> None:
        """Go FULL until ``now + peek_duration_s``; supersedes any pending revert."""
        self._cancel_pending()
        if not self.is_full:
            log.info("brightness: dim → full (%s)", reason or "wake")
        self._state.level = BrightnessLevel.FULL
        self._state.value = self.full
        self._state.wake_until = now + self.peek_duration_s
        self.last_wake = now

        self._token += 1
        token = self._token
        delay = self._state.wake_until - self._scheduler.now()
        self._pending = self._scheduler.call_later(delay, lambda: self._on_revert_due(token))

    def revert(self, token: int) -> bool:
        """Drop to DIM if ``token`` belongs to the armed timer. Returns True if applied."""
        if self._pending is None or token != self._token:
            log.debug("brightness: stale revert %d ignored (current %d)", token, self._token)
            return False
        self._pending = None
        self._state.level = BrightnessLevel.DIM
        self._state.value = self.dim
        self._state.wake_until = None
        self.revert_count += 1
        log.info("brightness: full → dim (idle)")
        return True

    def cancel(self) -> None:
        """Disarm any pending revert without changing the level."""
        self._cancel_pending()

    def reset(self) -> None:
        """Disarm and return to DIM with no deadline."""
        self._cancel_pending()
        self._state = BrightnessState(BrightnessLevel.DIM, self.dim, None)
        self.last_wake = None

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
