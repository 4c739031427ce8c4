"""Tests for the wake → idle brightness controller."""

from __future__ import annotations

import pytest

from instantpeek.config import BrightnessConfig
from instantpeek.core.brightness import BrightnessController
from instantpeek.core.state import BrightnessLevel


def _make(scheduler, peek: float = 10.0):
    """Controller whose timer firings apply the revert directly, recording each one."""
    fired: list[tuple[int, float]] = []
    holder: dict = {}

    def on_due(token: int) -> None:
        fired.append((token, scheduler.now()))
        holder["ctl"].revert(token)

    ctl = BrightnessController(scheduler, on_due, dim=0.2, full=1.0, peek_duration_s=peek)
    holder["ctl"] = ctl
    return ctl, fired


class TestWake:
    def test_starts_dim_and_idle(self, scheduler):
        ctl, _ = _make(scheduler)
        assert ctl.level == BrightnessLevel.DIM
        assert ctl.current_level() == pytest.approx(0.2)
        assert ctl.wake_until is None
        assert ctl.pending is None

    def test_wake_sets_full_and_deadline(self, scheduler):
        ctl, _ = _make(scheduler)
        ctl.wake(scheduler.now())
        assert ctl.is_full
        assert ctl.current_level() == pytest.approx(1.0)
        assert ctl.wake_until == pytest.approx(10.0)
        assert ctl.pending is not None

    def test_reverts_after_peek(self, scheduler):
        ctl, fired = _make(scheduler)
        ctl.wake(scheduler.now())
        scheduler.advance(9.9)
        assert ctl.is_full
        scheduler.advance(0.2)
        assert ctl.level == BrightnessLevel.DIM
        assert ctl.wake_until is None
        assert ctl.pending is None
        assert len(fired) == 1

    def test_two_wakes_100ms_apart_fire_once(self, scheduler):
        ctl, fired = _make(scheduler)
        ctl.wake(scheduler.now())
        scheduler.advance(0.1)
        ctl.wake(scheduler.now())

        scheduler.advance(30.0)
        assert len(fired) == 1
        assert fired[0][1] == pytest.approx(10.1)
        assert ctl.revert_count == 1

    def test_many_wakes_single_pending(self, scheduler):
        ctl, fired = _make(scheduler)
        for _ in range(50):
            ctl.wake(scheduler.now())
            scheduler.advance(0.3)
            assert len(scheduler.pending) == 1
        last_deadline = ctl.wake_until

        scheduler.advance(last_deadline - scheduler.now() - 0.01)
        assert ctl.is_full
        scheduler.advance(0.02)
        assert not ctl.is_full
        assert len(fired) == 1

    def test_last_wake_recorded(self, scheduler):
        ctl, _ = _make(scheduler)
        scheduler.advance(3.0)
        ctl.wake(scheduler.now())
        assert ctl.last_wake == pytest.approx(3.0)


class TestRevert:
    def test_stale_token_ignored(self, scheduler):
        ctl, _ = _make(scheduler)
        ctl.wake(0.0)
        old = ctl.token
        ctl.wake(0.0)
        assert ctl.revert(old) is False
        assert ctl.is_full

    def test_revert_without_pending_ignored(self, scheduler):
        ctl, _ = _make(scheduler)
        assert ctl.revert(ctl.token) is False
        assert ctl.revert_count == 0

    def test_cancel_keeps_level(self, scheduler):
        ctl, fired = _make(scheduler)
        ctl.wake(0.0)
        ctl.cancel()
        scheduler.advance(20.0)
        assert ctl.is_full
        assert fired == []

    def test_reset(self, scheduler):
        ctl, _ = _make(scheduler)
        ctl.wake(0.0)
        ctl.reset()
        assert ctl.level == BrightnessLevel.DIM
        assert ctl.pending is None
        assert ctl.last_wake is None
        assert scheduler.pending == []


class TestFromConfig:
    def test_uses_config_values(self, scheduler):
        cfg = BrightnessConfig(dim=0.1, full=0.9, peek_duration_s=5.0)
        ctl = BrightnessController.from_config(scheduler, lambda token: None, cfg)
        ctl.wake(0.0)
        assert ctl.current_level() == pytest.approx(0.9)
        assert ctl.wake_until == pytest.approx(5.0)
        assert ctl.dim == pytest.approx(0.1)
