"""
TraceEmitter — fan-out of propagation trace events to registered listeners
(Socket.IO, loggers, tests).

Events are plain dicts (see trace_types.py). Every event is stamped with a
millisecond timestamp before delivery.
"""
from __future__ import annotations

import time
from logging import getLogger
from typing import Callable, List

from .trace_types import TraceEvent

logger = getLogger(__name__)

Listener = Callable[[TraceEvent], None]


class TraceEmitter:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_trace(self, callback: Listener) -> None:
        """Register a callback that receives every emitted trace event."""
        self._listeners.append(callback)

    def off_trace(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: TraceEvent) -> None:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if "ts" not in payload:
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                # a broken listener must not abort the edit that fired the event
                logger.exception("Trace listener failed on %s event", payload.get("type"))


# ---------------------------------------------------------------------------
# Module-level singleton, shared by the Socket.IO layer and the default state
# ---------------------------------------------------------------------------

global_tracer = TraceEmitter()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)
