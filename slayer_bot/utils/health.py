"""Minimal health HTTP endpoints.

Provides `/health`, `/ready` and `/metrics` using aiohttp. The server runs
in the bot's event loop when started from `SlayerBot.setup_hook`.
"""
from typing import Any, Callable, Dict, Optional
import asyncio
import os
import time
from aiohttp import web

from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.health")


def build_app(ready: Callable[[], bool], stats: Optional[Callable[[], Dict[str, Any]]] = None) -> web.Application:
    """Create the aiohttp app; `ready` and `stats` are polled per request."""
    started = time.time()

    async def _health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _ready(request: web.Request) -> web.Response:
        is_ready = bool(ready())
        return web.json_response({"ready": is_ready}, status=200 if is_ready else 503)

    async def _metrics(request: web.Request) -> web.Response:
        payload: Dict[str, Any] = {"uptime": time.time() - started, "pid": os.getpid()}
        if stats is not None:
            payload.update(stats())
        return web.json_response(payload)

    app = web.Application()
    app.router.add_get("/health", _health)
    app.router.add_get("/ready", _ready)
    app.router.add_get("/metrics", _metrics)
    return app


async def start_health_server(app: web.Application, host: str = "0.0.0.0", port: int = 8080) -> None:
    """Serve `app` until the task is cancelled.

    Safe to schedule with `loop.create_task()`; it does not block the caller.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Health server started at http://%s:%s (endpoints: /health /ready /metrics)", host, port)

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
