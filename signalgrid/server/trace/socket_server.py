"""
Socket.IO server for live propagation traces.

Uses python-socketio in ASGI mode so it can wrap FastAPI.
`create_socket_app(fastapi_app)` returns the composite ASGI application to
pass to uvicorn.
"""
from __future__ import annotations

import asyncio
from logging import getLogger
from typing import Any, Dict, Optional

import socketio

from .trace_emitter import TraceEmitter, global_tracer

logger = getLogger(__name__)

# ---------------------------------------------------------------------------
# Socket.IO instance (async, ASGI mode)
# ---------------------------------------------------------------------------

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    logger=False,
    engineio_logger=False,
)


# ---------------------------------------------------------------------------
# Trace fan-out: tracer → Socket.IO emit
# ---------------------------------------------------------------------------

def _on_trace(event: Dict[str, Any]) -> None:
    """
    Called synchronously by TraceEmitter.fire().
    Schedules an async emit when an event loop is running; outside a loop
    (CLI, unit tests) there is nobody to emit to.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    loop.create_task(sio.emit("trace", event))


# ---------------------------------------------------------------------------
# Socket.IO lifecycle events
# ---------------------------------------------------------------------------

@sio.event
async def connect(sid: str, environ: dict) -> None:
    logger.debug("Trace client connected: %s", sid)


@sio.event
async def disconnect(sid: str) -> None:
    logger.debug("Trace client disconnected: %s", sid)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_socket_app(fastapi_app: Any, tracer: Optional[TraceEmitter] = None) -> socketio.ASGIApp:
    """Wrap *fastapi_app* inside a Socket.IO ASGI application."""
    (tracer or global_tracer).on_trace(_on_trace)
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
