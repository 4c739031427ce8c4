"""Pixel-shift offsets for burn-in protection."""

from __future__ import annotations

import random

from instantpeek.core.state import Offset


class OffsetPolicy:
    """Draws dx, dy independently and uniformly from [-range, +range]."""

    def __init__(self, rng: random.Random | None = None, *, range_px: int = 10) -> None:
        if range_px < 0:
            raise ValueError(f"offset range must be non-negative, got {range_px}")
        self._rng = rng or random.Random()
        self.range_px = range_px

    def next_offset(self) -> Offset:
        r = self.range_px
        return Offset(self._rng.randint(-r, r), self._rng.randint(-r, r))
