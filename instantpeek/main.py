"""InstantPeek entry point: display runtime + simulated sensor + HTTP surface."""

from __future__ import annotations

import argparse
import asyncio
import logging

log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="InstantPeek always-on display controller")
    p.add_argument("--config", default=None, help="YAML config file path")
    p.add_argument("--host", default=None, help="HTTP bind address (default: 127.0.0.1)")
    p.add_argument("--http-port", type=int, default=None, help="HTTP server port (default: 8080)")
    p.add_argument("--no-http", action="store_true", help="Disable HTTP/WebSocket server")
    p.add_argument("--no-sensor", action="store_true", help="Disable simulated accelerometer")
    p.add_argument("--shake-every", type=float, default=None, help="Simulated shake period in seconds (0 = never)")
    p.add_argument("--log-level", default="INFO", help="Log level")
    return p.parse_args(argv)


async def async_main(args: argparse.Namespace) -> None:
    from instantpeek.config import load_config
    from instantpeek.core.runtime import DisplayRuntime
    from instantpeek.devices.motion import SimulatedAccelerometer

    cfg = load_config(args.config)

    # Apply CLI overrides
    if args.host:
        cfg.network.host = args.host
    if args.http_port is not None:
        cfg.network.http_port = args.http_port
    if args.shake_every is not None:
        cfg.sim.shake_every_s = args.shake_every
    cfg.validate()

    runtime = DisplayRuntime(cfg)
    runtime.subscribe(_log_snapshot)

    accel = None
    http_server = None

    try:
        # ── Motion sensor ────────────────────────────────────────
        if not args.no_sensor:
            accel = SimulatedAccelerometer.from_config(
                runtime.motion_sample_event, cfg.sim, cfg.motion
            )
            accel.start()

        # ── HTTP server ──────────────────────────────────────────
        tasks = [runtime.run()]
        if not args.no_http:
            import uvicorn

            from instantpeek.api.http_server import create_app
            from instantpeek.api.ws_hub import WsHub

            ws_hub = WsHub()
            runtime.subscribe(ws_hub.broadcast_snapshot)
            app = create_app(runtime, ws_hub)
            http_config = uvicorn.Config(
                app,
                host=cfg.network.host,
                port=cfg.network.http_port,
                log_level="warning",
            )
            http_server = uvicorn.Server(http_config)
            tasks.append(_serve_then_stop(http_server, runtime))

        log.info(
            "instantpeek running (sensor=%s, http=%s)",
            accel is not None,
            f"{cfg.network.host}:{cfg.network.http_port}" if http_server else "off",
        )
        await asyncio.gather(*tasks)

    finally:
        log.info("shutting down...")
        if http_server:
            http_server.should_exit = True
        if accel:
            accel.stop()
        runtime.deactivate()


async def _serve_then_stop(http_server, runtime) -> None:
    """uvicorn owns SIGINT; end the display session when it exits."""
    try:
        await http_server.serve()
    finally:
        runtime.stop()


def _log_snapshot(snapshot) -> None:
    log.debug(
        "render #%d: mode=%s phase=%s brightness=%.2f bg=%s offset=(%d,%d)",
        snapshot.seq,
        snapshot.mode.value,
        snapshot.phase.value,
        snapshot.brightness,
        snapshot.background_color,
        snapshot.offset.dx,
        snapshot.offset.dy,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        asyncio.run(async_main(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
