"""Accelerometer samples and a simulated sensor for development without hardware.

Usage:
    accel = SimulatedAccelerometer(on_sample=runtime.motion_sample_event)
    accel.start()
    accel.shake()   # inject a burst of movement
    ...
    accel.stop()
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from instantpeek.config import MotionConfig, SimConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MotionSample:
    ax: float
    ay: float
    az: float
    t_mono: float = 0.0

    @property
    def magnitude(self) -> float:
        return motion_magnitude(self.ax, self.ay, self.az)


def motion_magnitude(ax: float, ay: float, az: float) -> float:
    """Total movement as the sum of absolute axis readings (m/s²)."""
    return abs(ax) + abs(ay) + abs(az)


class SimulatedAccelerometer:
    """Streams resting samples (gravity on Z plus noise) from a daemon thread."""

    def __init__(
        self,
        on_sample: Callable[[MotionSample], None],
        *,
        sample_hz: float = 16.0,
        gravity: float = 9.8,
        noise: float = 0.2,
        shake_every_s: float = 0.0,
        shake_magnitude: float = 16.0,
        rng: random.Random | None = None,
    ) -> None:
        self._on_sample = on_sample
        self.sample_hz = sample_hz
        self.gravity = gravity
        self.noise = noise
        self.shake_every_s = shake_every_s
        self.shake_magnitude = shake_magnitude
        self._rng = rng or random.Random()

        self._lock = threading.Lock()
        self._shake_samples = 0
        self._running = False
        self._thread: threading.Thread | None = None
        self.samples_sent = 0

    @classmethod
    def from_config(
        cls,
        on_sample: Callable[[MotionSample], None],
        sim: SimConfig,
        motion: MotionConfig,
    ) -> SimulatedAccelerometer:
        return cls(
            on_sample,
            sample_hz=sim.sample_hz,
            gravity=motion.gravity,
            shake_every_s=sim.shake_every_s,
            shake_magnitude=sim.shake_magnitude,
        )

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, name="accel-sim", daemon=True)
        self._thread.start()
        log.info("accel_sim: streaming at %.1f Hz", self.sample_hz)

    def stop(self) -> None:
        self._running = False
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None
        log.info("accel_sim: stopped (%d samples)", self.samples_sent)

    def shake(self, samples: int = 3) -> None:
        """Make the next ``samples`` readings look like a wrist flick."""
        with self._lock:
            self._shake_samples = max(self._shake_samples, samples)

    def next_sample(self) -> MotionSample:
        n = self.noise
        ax = self._rng.uniform(-n, n)
        ay = self._rng.uniform(-n, n)
        az = self.gravity + self._rng.uniform(-n, n)
        with self._lock:
            shaking = self._shake_samples > 0
            if shaking:
                self._shake_samples -= 1
        if shaking:
            ax += self._rng.choice((-1.0, 1.0)) * self.shake_magnitude / 2
            ay += self._rng.choice((-1.0, 1.0)) * self.shake_magnitude / 2
        return MotionSample(ax, ay, az, time.monotonic())

    def _loop(self) -> None:
        period = 1.0 / self.sample_hz
        last_shake = time.monotonic()
        while self._running:
            now = time.monotonic()
            if self.shake_every_s > 0 and now - last_shake >= self.shake_every_s:
                last_shake = now
                self.shake()
            self._on_sample(self.next_sample())
            self.samples_sent += 1
            time.sleep(period)
