"""Display state types.

Mode    user-toggled selection (red/thumbs-down vs green/thumbs-up).
Phase   which of the two burn-in layouts is showing.
Offset  pixel shift applied as a layout inset.
RenderSnapshot everything the host needs to paint one frame.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

Color = tuple[int, int, int]

# ── Colours ──────────────────────────────────────────────────────

RED: Color = (255, 0, 0)
GREEN: Color = (0, 255, 0)
WHITE: Color = (255, 255, 255)
BLACK: Color = (0, 0, 0)


# ── Enums ────────────────────────────────────────────────────────


class Mode(str, Enum):
    A = "A"  # red, thumbs down
    B = "B"  # green, thumbs up

    def toggled(self) -> Mode:
        return Mode.B if self is Mode.A else Mode.A


class Phase(str, Enum):
    NORMAL = "NORMAL"  # coloured background, neutral foreground
    INVERTED = "INVERTED"  # neutral background, coloured foreground

    def flipped(self) -> Phase:
        return Phase.INVERTED if self is Phase.NORMAL else Phase.NORMAL


class BrightnessLevel(str, Enum):
    DIM = "DIM"
    FULL = "FULL"


MODE_BASE_COLOR: dict[Mode, Color] = {
    Mode.A: RED,
    Mode.B: GREEN,
}

MODE_ASSET: dict[Mode, str] = {
    Mode.A: "thumbs_down",
    Mode.B: "thumbs_up",
}


# ── Value types ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Offset:
    dx: int = 0
    dy: int = 0

    def padding(self, base_x: int = 40, base_y: int = 80) -> tuple[int, int, int, int]:
        """Layout inset (left, top, right, bottom) around a base padding."""
        return (
            base_x + self.dx,
            base_y + self.dy,
            base_x - self.dx,
            base_y - self.dy,
        )


@dataclass(slots=True)
class BrightnessState:
    level: BrightnessLevel = BrightnessLevel.DIM
    value: float = 0.2
    wake_until: float | None = None  # scheduler clock seconds; None = idle


@dataclass(frozen=True, slots=True)
class RenderSnapshot:
    """Immutable paint instruction produced after every handled event."""

    background_color: Color
    foreground_color: Color
    brightness: float
    offset: Offset = field(default_factory=Offset)
    foreground_asset: str = MODE_ASSET[Mode.A]
    mode: Mode = Mode.A
    phase: Phase = Phase.NORMAL
    seq: int = 0

    @property
    def background_alpha(self) -> int:
        """Background alpha (0-255) tracking brightness for extra dimming."""
        return max(0, min(255, int(self.brightness * 255)))

    def to_dict(self) -> dict:
        return {
            "background_color": list(self.background_color),
            "foreground_color": list(self.foreground_color),
            "background_alpha": self.background_alpha,
            "brightness": round(self.brightness, 3),
            "offset": {"dx": self.offset.dx, "dy": self.offset.dy},
            "foreground_asset": self.foreground_asset,
            "mode": self.mode.value,
            "phase": self.phase.value,
            "seq": self.seq,
        }
