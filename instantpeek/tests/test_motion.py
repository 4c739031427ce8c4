"""Tests for motion samples and the simulated accelerometer."""

from __future__ import annotations

import random
import time

import pytest

from instantpeek.config import MotionConfig, SimConfig
from instantpeek.devices.motion import MotionSample, SimulatedAccelerometer, motion_magnitude


class TestMagnitude:
    def test_sum_of_absolute_axes(self):
        assert motion_magnitude(1.0, -2.0, 9.8) == pytest.approx(12.8)

    def test_sample_property(self):
        assert MotionSample(-3.0, 0.0, -9.8).magnitude == pytest.approx(12.8)


class TestSimulatedAccelerometer:
    def _make(self, **kw) -> SimulatedAccelerometer:
        return SimulatedAccelerometer(lambda s: None, rng=random.Random(8), **kw)

    def test_resting_samples_stay_near_gravity(self):
        accel = self._make(noise=0.2)
        for _ in range(200):
            delta = accel.next_sample().magnitude - 9.8
            assert abs(delta) < 2.0

    def test_shake_exceeds_threshold_then_settles(self):
        accel = self._make(noise=0.2, shake_magnitude=16.0)
        accel.shake(samples=2)
        shaken = [accel.next_sample().magnitude - 9.8 for _ in range(2)]
        assert all(abs(d) > 2.0 for d in shaken)
        assert abs(accel.next_sample().magnitude - 9.8) < 2.0

    def test_stream_delivers_samples(self):
        received: list[MotionSample] = []
        accel = SimulatedAccelerometer(received.append, sample_hz=200.0, rng=random.Random(1))
        accel.start()
        assert accel.running
        deadline = time.monotonic() + 2.0
        while len(received) < 5 and time.monotonic() < deadline:
            time.sleep(0.01)
        accel.stop()
        assert not accel.running
        assert len(received) >= 5

    def test_from_config(self):
        sim = SimConfig(sample_hz=4.0, shake_every_s=3.0, shake_magnitude=12.0)
        motion = MotionConfig(gravity=9.81)
        accel = SimulatedAccelerometer.from_config(lambda s: None, sim, motion)
        assert accel.sample_hz == 4.0
        assert accel.gravity == 9.81
        assert accel.shake_every_s == 3.0
        assert accel.shake_magnitude == 12.0
