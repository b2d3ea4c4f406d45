# planning_poker/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from starlette.requests import HTTPConnection

from planning_poker.core.config import Settings
from planning_poker.services.connection_manager import ConnectionManager
from planning_poker.services.room_store import RoomStore
from planning_poker.services.session_gateway import SessionGateway


class AppState:
    """
    Everything one running application owns.

    Built once by ``create_app`` and hung on ``app.state.poker``; routes reach
    it through ``get_app_state`` instead of module-level singletons, so every
    app (and every test) starts from an empty room store.
    """

    def __init__(self, config: Settings) -> None:
        self.settings = config
        self.room_store = RoomStore(deck=config.ESTIMATE_DECK)
        self.connection_manager = ConnectionManager(
            room_store=self.room_store,
            queue_size=config.OUTBOUND_QUEUE_SIZE,
        )
        self.gateway = SessionGateway(self.room_store, self.connection_manager)
        self.app_start_time: datetime = datetime.now(timezone.utc)


def get_app_state(conn: HTTPConnection) -> AppState:
    """FastAPI dependency, usable from both HTTP routes and WebSocket endpoints."""
    return conn.app.state.poker
