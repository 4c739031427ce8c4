"""WebSocket hub for broadcasting render snapshots to connected clients."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING

from fastapi import WebSocket

if TYPE_CHECKING:
    from instantpeek.core.state import RenderSnapshot

log = logging.getLogger(__name__)

WS_SCHEMA = "instantpeek_ws_v1"


class WsHub:
    """Manages WebSocket clients and broadcasts every rendered frame."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self.sent = 0

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def add(self, ws: WebSocket) -> None:
        self._clients.add(ws)
        log.info("ws: client connected (%d total)", len(self._clients))

    def remove(self, ws: WebSocket) -> None:
        self._clients.discard(ws)
        log.info("ws: client disconnected (%d total)", len(self._clients))

    def broadcast_snapshot(self, snapshot: RenderSnapshot) -> None:
        """Non-blocking broadcast; a client whose send fails is dropped."""
        if not self._clients:
            return

        envelope = json.dumps(
            {
                "schema": WS_SCHEMA,
                "type": "render",
                "ts_ms": int(time.monotonic() * 1000),
                "payload": snapshot.to_dict(),
            }
        )

        stale: list[WebSocket] = []
        for ws in self._clients:
            try:
                task = asyncio.ensure_future(ws.send_text(envelope))
            except Exception:
                stale.append(ws)
                continue
            task.add_done_callback(lambda t, ws=ws: self._on_send_done(ws, t))
            self.sent += 1

        for ws in stale:
            self._clients.discard(ws)

    def _on_send_done(self, ws: WebSocket, task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and ws in self._clients:
            self._clients.discard(ws)
            log.info("ws: dropped client after send error: %s", exc)
