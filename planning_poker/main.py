# planning_poker/main.py

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planning_poker.api import websocket as websocket_module
from planning_poker.api.routes import health, metrics, root, rooms
from planning_poker.core.config import Settings, settings
from planning_poker.core.logging import get_logger, setup_logging
from planning_poker.core.state import AppState
from planning_poker.services.room_store import run_reaper

logger = get_logger(__name__)


def create_app(config: Settings = settings) -> FastAPI:
    # Configure logging first
    setup_logging(config.LOG_LEVEL)

    state = AppState(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Application starting - planning poker rooms enabled")
        reaper = None
        if config.REAP_INTERVAL_SEC > 0:
            reaper = asyncio.create_task(
                run_reaper(
                    state.room_store,
                    state.connection_manager.has_connections,
                    interval_sec=config.REAP_INTERVAL_SEC,
                    grace_sec=config.ROOM_IDLE_GRACE_SEC,
                )
            )
        yield
        if reaper is not None:
            reaper.cancel()
            try:
                await reaper
            except asyncio.CancelledError:
                pass
        state.connection_manager.close_all()
        state.room_store.clear()
        logger.info("Application stopped")

    app = FastAPI(title="Planning Poker", lifespan=lifespan)
    app.state.poker = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("planning_poker.main:app", host="0.0.0.0", port=8000)
