#!/usr/bin/env python3
"""InstantPeek simulator: paints render snapshots in a pygame window.

The display runtime runs on its own asyncio loop in a background thread;
this window is just another host: it forwards taps and shakes and paints
whatever snapshot arrived last.

Run: python -m tools.peek_sim [--config peek.yaml]

Controls:
  Space / click  Tap (toggle mode + wake)
  M              Shake the wrist (simulated accelerometer burst)
  A              Activate session
  D              Deactivate session
  Q / Esc        Quit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import threading

import pygame

from instantpeek.config import load_config
from instantpeek.core.runtime import DisplayRuntime
from instantpeek.core.state import RenderSnapshot
from instantpeek.devices.motion import SimulatedAccelerometer

log = logging.getLogger(__name__)

# ── Display constants ────────────────────────────────────────────────

SCREEN_W = 240  # simulated watch face
SCREEN_H = 280
PIXEL_SCALE = 2
CANVAS_W = SCREEN_W * PIXEL_SCALE
CANVAS_H = SCREEN_H * PIXEL_SCALE
WINDOW_W = CANVAS_W + 40
WINDOW_H = CANVAS_H + 110  # room for HUD
WINDOW_BG = (20, 20, 25)
HUD_FG = (200, 200, 200)
FPS = 30


# ── Runtime thread ───────────────────────────────────────────────────


class RuntimeThread:
    """Hosts a DisplayRuntime on a private event loop."""

    def __init__(self, cfg) -> None:
        self._cfg = cfg
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="display-loop", daemon=True)
        self._ready = threading.Event()
        self.runtime: DisplayRuntime | None = None
        self.latest: RenderSnapshot | None = None

    def start(self) -> DisplayRuntime:
        self._thread.start()
        self._ready.wait(timeout=5)
        assert self.runtime is not None, "display runtime failed to start"
        return self.runtime

    def stop(self) -> None:
        if self.runtime:
            self.runtime.stop()
        self._thread.join(timeout=2)

    def _on_render(self, snapshot: RenderSnapshot) -> None:
        self.latest = snapshot

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_until_complete(self._main())
        self._loop.close()

    async def _main(self) -> None:
        self.runtime = DisplayRuntime(self._cfg, loop=self._loop)
        self.runtime.subscribe(self._on_render)
        self._ready.set()
        await self.runtime.run()


# ── Drawing helpers ──────────────────────────────────────────────────


def _scale(color: tuple[int, int, int], brightness: float) -> tuple[int, int, int]:
    """Approximate panel backlight by scaling each channel."""
    return tuple(max(0, min(255, int(c * brightness))) for c in color)  # type: ignore[return-value]


def _draw_thumb(surface: pygame.Surface, rect: pygame.Rect, color, down: bool) -> None:
    """Block thumb icon filling ``rect``; flipped vertically for thumbs down."""
    w, h = rect.width, rect.height
    fist = pygame.Rect(0, int(h * 0.45), int(w * 0.75), int(h * 0.5))
    thumb = pygame.Rect(int(w * 0.2), int(h * 0.05), int(w * 0.22), int(h * 0.45))
    cuff = pygame.Rect(int(w * 0.78), int(h * 0.5), int(w * 0.2), int(h * 0.42))
    for part in (fist, thumb, cuff):
        if down:
            part.y = h - part.y - part.height
        part.move_ip(rect.x, rect.y)
        pygame.draw.rect(surface, color, part, border_radius=max(2, w // 20))


def draw_snapshot(surface: pygame.Surface, snap: RenderSnapshot, ox: int, oy: int) -> None:
    canvas = pygame.Rect(ox, oy, CANVAS_W, CANVAS_H)
    pygame.draw.rect(surface, _scale(snap.background_color, snap.brightness), canvas)

    left, top, right, bottom = snap.offset.padding()
    icon = pygame.Rect(
        ox + left * PIXEL_SCALE,
        oy + top * PIXEL_SCALE,
        CANVAS_W - (left + right) * PIXEL_SCALE,
        CANVAS_H - (top + bottom) * PIXEL_SCALE,
    )
    _draw_thumb(
        surface,
        icon,
        _scale(snap.foreground_color, snap.brightness),
        down=snap.foreground_asset == "thumbs_down",
    )


def _hud_lines(runtime: DisplayRuntime, snap: RenderSnapshot | None) -> list[str]:
    st = runtime.status()
    lines = [
        f"active={st['active']}  mode={st['mode']}  phase={st['phase']}",
        f"brightness={st['brightness']:.2f} ({st['brightness_level']})"
        f"  pending_revert={st['pending_revert']}",
    ]
    if snap:
        lines.append(
            f"render #{snap.seq}  bg={snap.background_color}  "
            f"offset=({snap.offset.dx},{snap.offset.dy})"
        )
    lines.append("SPACE tap   M shake   A/D activate/deactivate   Q quit")
    return lines


# ── Main loop ────────────────────────────────────────────────────────


def main() -> None:
    p = argparse.ArgumentParser(description="InstantPeek simulator")
    p.add_argument("--config", default=None, help="YAML config file path")
    p.add_argument("--log-level", default="INFO", help="Log level")
    args = p.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    cfg = load_config(args.config)
    host = RuntimeThread(cfg)
    runtime = host.start()
    accel = SimulatedAccelerometer.from_config(runtime.motion_sample_event, cfg.sim, cfg.motion)
    accel.start()

    pygame.init()
    screen = pygame.display.set_mode((WINDOW_W, WINDOW_H))
    pygame.display.set_caption("InstantPeek Simulator")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("monospace", 13)

    running = True
    try:
        while running:
            # ── Events ───────────────────────────────────────────────
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.MOUSEBUTTONDOWN:
                    runtime.tap()
                elif event.type == pygame.KEYDOWN:
                    if event.key in (pygame.K_q, pygame.K_ESCAPE):
                        running = False
                    elif event.key == pygame.K_SPACE:
                        runtime.tap()
                    elif event.key == pygame.K_m:
                        accel.shake()
                    elif event.key == pygame.K_a:
                        runtime.activate()
                    elif event.key == pygame.K_d:
                        runtime.deactivate()

            # ── Render ───────────────────────────────────────────────
            screen.fill(WINDOW_BG)
            snap = host.latest
            if snap is not None:
                draw_snapshot(screen, snap, 20, 20)

            y = CANVAS_H + 30
            for line in _hud_lines(runtime, snap):
                screen.blit(font.render(line, True, HUD_FG), (20, y))
                y += 18

            pygame.display.flip()
            clock.tick(FPS)
    finally:
        accel.stop()
        host.stop()
        pygame.quit()


if __name__ == "__main__":
    main()
