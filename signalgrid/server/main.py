"""
FastAPI + Socket.IO server for the signal grid.

Start with:
    signalgrid-server

Or via uvicorn directly:
    uvicorn signalgrid.server.main:create_asgi_app --factory --port 3001
"""
from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signalgrid.config import Settings, get_settings
from signalgrid.persistence import LocalStore, SchemaError, StorageError
from signalgrid.server.routes.graph_routes import router
from signalgrid.server.state import GraphState
from signalgrid.server.trace.socket_server import create_socket_app

logger = logging.getLogger(__name__)


def build_state(settings: Settings) -> GraphState:
    """Create the graph state and, if enabled, restore the save slot."""
    state = GraphState(LocalStore(settings.store_dir), slot=settings.save_slot)
    if settings.autoload:
        try:
            if state.load():
                logger.info("Restored slot '%s' (%d nodes)", state.slot, len(state.graph))
        except (SchemaError, StorageError) as exc:
            # Start empty; the broken slot stays on disk for inspection.
            logger.error("Could not restore slot '%s': %s", state.slot, exc)
    return state


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

def create_app(state: Optional[GraphState] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="signalgrid API", version="1.0.0")
    app.state.settings = settings
    app.state.graph_state = state or build_state(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


# ---------------------------------------------------------------------------
# Wrap with Socket.IO ASGI layer
# ---------------------------------------------------------------------------

def create_asgi_app():
    """Build the top-level ASGI app passed to uvicorn."""
    app = create_app()
    return create_socket_app(app, app.state.graph_state.tracer)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run() -> None:
    # Load .env before the settings are read for the first time.
    load_dotenv()
    settings = get_settings()
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=getattr(logging, settings.log_level),
    )

    import uvicorn

    uvicorn.run(
        "signalgrid.server.main:create_asgi_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    run()
