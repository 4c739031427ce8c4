"""Tests for the asyncio display runtime (real event loop, real timers)."""

from __future__ import annotations

import asyncio
import random
import threading

import pytest

from instantpeek.config import DisplayConfig
from instantpeek.core.runtime import DisplayRuntime
from instantpeek.core.state import BrightnessLevel, Mode


def _fast_config() -> DisplayConfig:
    cfg = DisplayConfig()
    cfg.brightness.peek_duration_s = 0.05
    cfg.motion.debounce_s = 0.0
    cfg.burn_in.inversion_start = "delayed"
    return cfg


class TestDisplayRuntime:
    @pytest.mark.asyncio
    async def test_activate_from_loop_is_synchronous(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        renders = []
        runtime.subscribe(renders.append)
        runtime.activate()
        assert len(renders) == 1
        assert runtime.snapshot is renders[0]
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_tap_from_other_thread_is_marshalled(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.activate()
        t = threading.Thread(target=runtime.tap)
        t.start()
        t.join()
        await asyncio.sleep(0.01)
        assert runtime.state_machine.mode == Mode.B
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_revert_fires_on_real_loop(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.activate()
        assert runtime.state_machine.brightness.level == BrightnessLevel.FULL
        await asyncio.sleep(0.15)
        assert runtime.state_machine.brightness.level == BrightnessLevel.DIM
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_motion_sample_wakes(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.activate()
        await asyncio.sleep(0.15)
        runtime.motion_sample(8.0, 8.0, 9.8)
        assert runtime.state_machine.brightness.level == BrightnessLevel.FULL
        assert runtime.samples_received == 1
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_deactivate_cancels_before_return(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.activate()
        runtime.deactivate()
        sm = runtime.state_machine
        assert not sm.active
        assert sm.brightness.pending is None
        assert not sm.inversion.running
        assert not sm.offset_timer.running

    @pytest.mark.asyncio
    async def test_run_until_stop(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        task = asyncio.create_task(runtime.run())
        await asyncio.sleep(0.01)
        assert runtime.state_machine.active
        runtime.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert not runtime.state_machine.active

    @pytest.mark.asyncio
    async def test_failing_subscriber_isolated(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))

        def broken(snap):
            raise RuntimeError("boom")

        renders = []
        runtime.subscribe(broken)
        runtime.subscribe(renders.append)
        runtime.activate()
        assert len(renders) == 1
        runtime.unsubscribe(broken)
        runtime.tap()
        assert len(renders) == 2
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_status_includes_runtime_counters(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.subscribe(lambda s: None)
        runtime.activate()
        st = runtime.status()
        assert st["active"] is True
        assert st["subscribers"] == 1
        assert st["samples_received"] == 0
        runtime.deactivate()

    @pytest.mark.asyncio
    async def test_deactivate_from_other_thread_cancels_before_return(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        runtime.activate()
        sm = runtime.state_machine
        seen: dict = {}

        def worker():
            runtime.deactivate()
            seen["active"] = sm.active
            seen["pending"] = sm.brightness.pending
            seen["inversion"] = sm.inversion.running
            seen["offset"] = sm.offset_timer.running

        await asyncio.to_thread(worker)
        assert seen == {"active": False, "pending": None, "inversion": False, "offset": False}

    @pytest.mark.asyncio
    async def test_cancelled_run_deactivates_and_propagates(self):
        runtime = DisplayRuntime(_fast_config(), rng=random.Random(1))
        task = asyncio.create_task(runtime.run())
        await asyncio.sleep(0.01)
        assert runtime.state_machine.active
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not runtime.state_machine.active
        assert runtime.state_machine.brightness.pending is None
