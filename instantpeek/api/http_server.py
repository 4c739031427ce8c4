"""FastAPI HTTP + WebSocket control surface.

GET  /status    current state and last snapshot
GET  /config    effective configuration
POST /actions   tap / activate / deactivate / motion
WS   /ws        render snapshots as they are produced
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from instantpeek.api.ws_hub import WsHub
    from instantpeek.core.runtime import DisplayRuntime

log = logging.getLogger(__name__)


def create_app(runtime: DisplayRuntime, ws_hub: WsHub) -> FastAPI:
    app = FastAPI(title="InstantPeek", version="1.0.0")

    # -- HTTP endpoints ------------------------------------------------------

    @app.get("/status")
    async def get_status():
        return JSONResponse(runtime.status())

    @app.get("/config")
    async def get_config():
        return JSONResponse(runtime.config.to_dict())

    @app.post("/actions")
    async def post_action(body: dict):
        action = body.get("action")
        if action == "tap":
            runtime.tap()
        elif action == "activate":
            runtime.activate()
        elif action == "deactivate":
            runtime.deactivate()
        elif action == "motion":
            try:
                ax = float(body["ax"])
                ay = float(body["ay"])
                az = float(body["az"])
            except (KeyError, TypeError, ValueError):
                return JSONResponse(
                    {"ok": False, "reason": "motion needs numeric ax, ay, az"},
                    status_code=400,
                )
            runtime.motion_sample(ax, ay, az)
        else:
            return JSONResponse(
                {"ok": False, "reason": f"unknown action: {action}"}, status_code=400
            )
        return JSONResponse({"ok": True, "reason": f"{action} sent"})

    # -- WebSocket -----------------------------------------------------------

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()
        ws_hub.add(ws)
        try:
            while True:
                raw = await ws.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                _handle_ws_cmd(msg, runtime)
        except WebSocketDisconnect:
            pass
        finally:
            ws_hub.remove(ws)

    return app


def _handle_ws_cmd(msg: dict, runtime: DisplayRuntime) -> None:
    """Process incoming WebSocket command messages."""
    if not isinstance(msg, dict):
        return
    action = msg.get("action")
    if action == "tap":
        runtime.tap()
    elif action == "activate":
        runtime.activate()
    elif action == "deactivate":
        runtime.deactivate()
    else:
        log.debug("ws: ignoring action %r", action)
