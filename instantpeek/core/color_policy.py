"""Colour selection for the two burn-in phases.

NORMAL:   varied mode colour behind a white icon.
INVERTED: black background, pure mode colour on the (smaller) icon.

The background colour in NORMAL is re-varied on every call so that no
pixel holds exactly the same value for long.
"""

from __future__ import annotations

import random

from instantpeek.config import BurnInConfig
from instantpeek.core.state import (
    BLACK,
    MODE_BASE_COLOR,
    WHITE,
    Color,
    Mode,
    Phase,
)


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


class ColorPolicy:
    """Pure colour computation over an injected random source."""

    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        variance: int = 15,
        dominant_floor: int = 200,
        minor_ceiling: int = 30,
        normal_foreground: Color = WHITE,
        inverted_background: Color = BLACK,
    ) -> None:
        self._rng = rng or random.Random()
        self.variance = variance
        self.dominant_floor = dominant_floor
        self.minor_ceiling = minor_ceiling
        self.normal_foreground = normal_foreground
        self.inverted_background = inverted_background

    @classmethod
    def from_config(cls, cfg: BurnInConfig, rng: random.Random | None = None) -> ColorPolicy:
        return cls(
            rng,
            variance=cfg.color_variance,
            dominant_floor=cfg.dominant_floor,
            minor_ceiling=cfg.minor_ceiling,
        )

    @staticmethod
    def base_color(mode: Mode) -> Color:
        return MODE_BASE_COLOR[mode]

    def color_for(self, mode: Mode, phase: Phase) -> tuple[Color, Color]:
        """Return (background, foreground) for a mode in a phase."""
        base = self.base_color(mode)
        if phase is Phase.INVERTED:
            return self.inverted_background, base
        return self.varied_color(base), self.normal_foreground

    def varied_color(self, base: Color) -> Color:
        """Perturb ``base`` by a fresh symmetric draw of up to ±variance.

        Dominant channels (those at the base's peak) drop by |variance| but
        never below the floor; the other channels pick up half of it, capped
        at the ceiling.
        """
        peak = max(base)
        if peak == 0:
            return base
        variance = int(self._rng.uniform(-self.variance, self.variance))
        shift = abs(variance)
        dominant = _clamp(255 - shift, self.dominant_floor, 255)
        minor = _clamp(int(shift / 2), 0, self.minor_ceiling)
        return tuple(dominant if c == peak else minor for c in base)  # type: ignore[return-value]
