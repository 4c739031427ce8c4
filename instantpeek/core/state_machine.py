"""Always-on display state machine.

Owns Mode, Phase, brightness and offset. Every input (user tap, motion
sample, timer firing, lifecycle call) becomes a DisplayEvent on one queue
and is handled to completion before the next one is taken:

    ACTIVATE          → reset to A/NORMAL/DIM, start timers, wake
    TAP               → flip mode, wake
    MOTION            → wake if |magnitude - g| > threshold, DIM and debounced
    INVERSION_TICK    → flip phase
    OFFSET_TICK       → new pixel offset
    BRIGHTNESS_REVERT → back to DIM (ignored if superseded)
    DEACTIVATE        → cancel every timer; drop events until ACTIVATE

Timers never touch state directly; they post events here.
"""

from __future__ import annotations

import logging
import random
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from instantpeek.config import DisplayConfig
from instantpeek.core.brightness import BrightnessController
from instantpeek.core.color_policy import ColorPolicy
from instantpeek.core.inversion import InversionScheduler
from instantpeek.core.offset_policy import OffsetPolicy
from instantpeek.core.state import (
    MODE_ASSET,
    Mode,
    Offset,
    Phase,
    RenderSnapshot,
)
from instantpeek.core.timers import PeriodicTimer, Scheduler

log = logging.getLogger(__name__)

RenderCallback = Callable[[RenderSnapshot], None]


class EventType(str, Enum):
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    TAP = "tap"
    MOTION = "motion"
    INVERSION_TICK = "inversion_tick"
    OFFSET_TICK = "offset_tick"
    BRIGHTNESS_REVERT = "brightness_revert"


@dataclass(slots=True)
class DisplayEvent:
    type: EventType
    t: float | None = None  # scheduler clock; stamped by dispatch when None
    magnitude: float = 0.0  # MOTION only
    token: int = 0  # BRIGHTNESS_REVERT only


class DisplayStateMachine:
    """Single-owner coordinator producing one RenderSnapshot per transition."""

    def __init__(
        self,
        scheduler: Scheduler,
        cfg: DisplayConfig | None = None,
        *,
        on_render: RenderCallback | None = None,
        rng: random.Random | None = None,
        color_policy: ColorPolicy | None = None,
        offset_policy: OffsetPolicy | None = None,
    ) -> None:
        self._cfg = (cfg or DisplayConfig()).validate()
        self._scheduler = scheduler
        self._on_render = on_render

        rng = rng or random.Random()
        self._colors = color_policy or ColorPolicy.from_config(self._cfg.burn_in, rng)
        self._offsets = offset_policy or OffsetPolicy(
            rng, range_px=self._cfg.burn_in.offset_range_px
        )
        self._brightness = BrightnessController.from_config(
            scheduler, self.on_brightness_revert, self._cfg.brightness
        )
        self._inversion = InversionScheduler.from_config(
            scheduler, self.on_inversion_tick, self._cfg.burn_in
        )
        self._offset_timer = PeriodicTimer(
            scheduler,
            self._cfg.burn_in.offset_interval_s,
            self.on_offset_tick,
            name="offset",
        )

        # Display state
        self._active = False
        self._mode = Mode.A
        self._phase = Phase.NORMAL
        self._offset = Offset()

        # Event queue
        self._queue: deque[DisplayEvent] = deque()
        self._lock = threading.Lock()
        self._draining = False

        self._render_seq = 0
        self._last_snapshot: RenderSnapshot | None = None
        self.handled_events = 0
        self.dropped_events = 0

    # ── Queries ──────────────────────────────────────────────────

    @property
    def config(self) -> DisplayConfig:
        return self._cfg

    @property
    def active(self) -> bool:
        return self._active

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def offset(self) -> Offset:
        return self._offset

    @property
    def brightness(self) -> BrightnessController:
        return self._brightness

    @property
    def inversion(self) -> InversionScheduler:
        return self._inversion

    @property
    def offset_timer(self) -> PeriodicTimer:
        return self._offset_timer

    @property
    def last_snapshot(self) -> RenderSnapshot | None:
        return self._last_snapshot

    def set_render_callback(self, on_render: RenderCallback | None) -> None:
        self._on_render = on_render

    def status(self) -> dict:
        return {
            "active": self._active,
            "mode": self._mode.value,
            "phase": self._phase.value,
            "brightness_level": self._brightness.level.value,
            "brightness": self._brightness.current_level(),
            "wake_until": self._brightness.wake_until,
            "pending_revert": self._brightness.pending is not None,
            "inversion_running": self._inversion.running,
            "offset_running": self._offset_timer.running,
            "offset": {"dx": self._offset.dx, "dy": self._offset.dy},
            "handled_events": self.handled_events,
            "dropped_events": self.dropped_events,
            "snapshot": self._last_snapshot.to_dict() if self._last_snapshot else None,
        }

    # ── Event producers ──────────────────────────────────────────

    def on_activate(self) -> None:
        self.dispatch(self._event(EventType.ACTIVATE))

    def on_deactivate(self) -> None:
        self.dispatch(self._event(EventType.DEACTIVATE))

    def on_tap(self) -> None:
        self.dispatch(self._event(EventType.TAP))

    def on_motion(self, magnitude: float) -> None:
        evt = self._event(EventType.MOTION)
        evt.magnitude = float(magnitude)
        self.dispatch(evt)

    def on_inversion_tick(self) -> None:
        self.dispatch(self._event(EventType.INVERSION_TICK))

    def on_offset_tick(self) -> None:
        self.dispatch(self._event(EventType.OFFSET_TICK))

    def on_brightness_revert(self, token: int) -> None:
        evt = self._event(EventType.BRIGHTNESS_REVERT)
        evt.token = token
        self.dispatch(evt)

    def dispatch(self, event: DisplayEvent) -> None:
        """Queue an event; the first caller in drains the queue to completion."""
        if event.t is None:
            event.t = self._scheduler.now()
        with self._lock:
            self._queue.append(event)
            if self._draining:
                return
            self._draining = True

        try:
            while True:
                with self._lock:
                    if not self._queue:
                        self._draining = False
                        return
                    evt = self._queue.popleft()
                self._handle(evt)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    # ── Handling ─────────────────────────────────────────────────

    def _event(self, event_type: EventType) -> DisplayEvent:
        return DisplayEvent(event_type, t=self._scheduler.now())

    def _handle(self, evt: DisplayEvent) -> None:
        if not self._active and evt.type is not EventType.ACTIVATE:
            self.dropped_events += 1
            log.debug("display: inactive, dropped %s", evt.type.value)
            return

        self.handled_events += 1
        handler = {
            EventType.ACTIVATE: self._handle_activate,
            EventType.DEACTIVATE: self._handle_deactivate,
            EventType.TAP: self._handle_tap,
            EventType.MOTION: self._handle_motion,
            EventType.INVERSION_TICK: self._handle_inversion_tick,
            EventType.OFFSET_TICK: self._handle_offset_tick,
            EventType.BRIGHTNESS_REVERT: self._handle_revert,
        }[evt.type]
        if handler(evt):  # False when nothing visible changed
            self._render()

    def _handle_activate(self, evt: DisplayEvent) -> bool:
        now = evt.t
        if self._active:
            self._brightness.wake(now, "resume")
            return True

        self._mode = Mode.A
        self._phase = Phase.NORMAL
        self._offset = Offset()
        self._brightness.reset()
        self._active = True
        log.info("display: activated")

        self._inversion.start()
        self._offset_timer.start()
        self._brightness.wake(now, "activate")
        return True

    def _handle_deactivate(self, evt: DisplayEvent) -> bool:
        self._inversion.stop()
        self._offset_timer.stop()
        self._brightness.cancel()
        self._active = False
        log.info("display: deactivated")
        return True

    def _handle_tap(self, evt: DisplayEvent) -> bool:
        old = self._mode
        self._mode = old.toggled()
        log.info("mode: %s → %s (tap)", old.value, self._mode.value)
        self._brightness.wake(evt.t, "tap")
        return True

    def _handle_motion(self, evt: DisplayEvent) -> bool:
        motion = self._cfg.motion
        delta = evt.magnitude - motion.gravity
        if abs(delta) <= motion.threshold:
            return False
        if self._brightness.is_full:
            return False  # chatter while awake must not push the deadline out

        now = evt.t
        last = self._brightness.last_wake
        if last is not None and now - last <= motion.debounce_s:
            log.debug("motion: debounced (%.2fs since wake)", now - last)
            return False

        self._brightness.wake(now, f"motion Δ={delta:.1f}")
        return True

    def _handle_inversion_tick(self, evt: DisplayEvent) -> bool:
        self._phase = self._inversion.flip(self._phase)
        log.debug("phase: %s", self._phase.value)
        return True

    def _handle_offset_tick(self, evt: DisplayEvent) -> bool:
        self._offset = self._offsets.next_offset()
        log.debug("offset: (%d, %d)", self._offset.dx, self._offset.dy)
        return True

    def _handle_revert(self, evt: DisplayEvent) -> bool:
        return self._brightness.revert(evt.token)

    # ── Output ───────────────────────────────────────────────────

    def _render(self) -> None:
        background, foreground = self._colors.color_for(self._mode, self._phase)
        self._render_seq += 1
        snapshot = RenderSnapshot(
            background_color=background,
            foreground_color=foreground,
            brightness=self._brightness.current_level(),
            offset=self._offset,
            foreground_asset=MODE_ASSET[self._mode],
            mode=self._mode,
            phase=self._phase,
            seq=self._render_seq,
        )
        self._last_snapshot = snapshot

        if self._on_render is None:
            return
        try:
            self._on_render(snapshot)
        except Exception:
            log.exception("render callback failed (seq=%d)", snapshot.seq)
