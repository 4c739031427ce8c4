"""asyncio host for the display state machine.

All state machine work runs on one event loop. The inbound API (activate,
deactivate, tap, motion_sample) may be called from any thread: calls from
the loop thread dispatch immediately, calls from elsewhere are marshalled
with ``call_soon_threadsafe``. ``deactivate`` additionally waits for the
loop to run it, so no timer fires after it returns. Snapshots are fanned
out to subscribers (simulator window, WebSocket hub) synchronously after
each transition.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import random
from typing import Any, Callable

from instantpeek.config import DisplayConfig
from instantpeek.core.state import RenderSnapshot
from instantpeek.core.state_machine import DisplayStateMachine, RenderCallback
from instantpeek.core.timers import AsyncioScheduler
from instantpeek.devices.motion import MotionSample, motion_magnitude

log = logging.getLogger(__name__)


class DisplayRuntime:
    def __init__(
        self,
        cfg: DisplayConfig | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._scheduler = AsyncioScheduler(self._loop)
        self._sm = DisplayStateMachine(
            self._scheduler, cfg, on_render=self._fan_out, rng=rng
        )
        self._subscribers: list[RenderCallback] = []
        self._stop_requested: asyncio.Event | None = None
        self.samples_received = 0
        self.submit_timeout_s = 2.0

    # ── Public API ───────────────────────────────────────────────

    @property
    def state_machine(self) -> DisplayStateMachine:
        return self._sm

    @property
    def config(self) -> DisplayConfig:
        return self._sm.config

    @property
    def snapshot(self) -> RenderSnapshot | None:
        return self._sm.last_snapshot

    def subscribe(self, callback: RenderCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: RenderCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def activate(self) -> None:
        self._submit(self._sm.on_activate)

    def deactivate(self) -> None:
        """Stop the session. Timers are cancelled before this returns, from any thread."""
        self._submit_and_wait(self._sm.on_deactivate)

    def tap(self) -> None:
        self._submit(self._sm.on_tap)

    def motion_sample(self, ax: float, ay: float, az: float) -> None:
        self.samples_received += 1
        self._submit(self._sm.on_motion, motion_magnitude(ax, ay, az))

    def motion_sample_event(self, sample: MotionSample) -> None:
        self.motion_sample(sample.ax, sample.ay, sample.az)

    def status(self) -> dict[str, Any]:
        result = self._sm.status()
        result["subscribers"] = len(self._subscribers)
        result["samples_received"] = self.samples_received
        return result

    async def run(self) -> None:
        """Activate, then hold the session open until ``stop()``."""
        self._stop_requested = asyncio.Event()
        self.activate()
        log.info("display runtime started")
        try:
            await self._stop_requested.wait()
        finally:
            self.deactivate()
            log.info("display runtime stopped")

    def stop(self) -> None:
        if self._stop_requested is not None:
            self._submit(self._stop_requested.set)

    # ── Internals ────────────────────────────────────────────────

    def _submit(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            fn(*args)
        elif self._loop.is_closed():
            log.debug("runtime: loop closed, dropped %s", getattr(fn, "__name__", fn))
        else:
            self._loop.call_soon_threadsafe(fn, *args)

    def _submit_and_wait(self, fn: Callable[..., Any], *args: Any) -> None:
        """Like ``_submit`` but blocks an off-loop caller until ``fn`` has run."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop or not self._loop.is_running():
            if self._loop.is_closed():
                log.debug("runtime: loop closed, dropped %s", getattr(fn, "__name__", fn))
                return
            fn(*args)
            return

        done: concurrent.futures.Future[None] = concurrent.futures.Future()

        def _call() -> None:
            try:
                fn(*args)
            except Exception as e:
                done.set_exception(e)
            else:
                done.set_result(None)

        self._loop.call_soon_threadsafe(_call)
        try:
            done.result(timeout=self.submit_timeout_s)
        except concurrent.futures.TimeoutError:
            log.warning(
                "runtime: %s not confirmed within %.1fs",
                getattr(fn, "__name__", fn),
                self.submit_timeout_s,
            )

    def _fan_out(self, snapshot: RenderSnapshot) -> None:
        for cb in list(self._subscribers):
            try:
                cb(snapshot)
            except Exception:
                log.exception("render subscriber %r failed", cb)
