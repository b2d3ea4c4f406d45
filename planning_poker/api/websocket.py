# planning_poker/api/websocket.py

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from planning_poker.core.state import AppState, get_app_state

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, state: AppState = Depends(get_app_state)):
    """
    WebSocket endpoint for one planning poker participant.

    Protocol:
    =========

    Client -> Server Commands:
    --------------------------
    Join:
        {"type": "Join", "room_id": "uuid-123", "name": "alice"}
        Response: {"type": "Joined", "user_id": "...", "room_id": "uuid-123"} (to you only)
                  then {"type": "RoomState", "room": {...}} (to everyone in the room)

    Rejoin:
        {"type": "Rejoin", "room_id": "uuid-123", "user_id": "...", "name": "alice"}
        Response: same as Join, or Error if the user id is unknown

    Vote:
        {"type": "Vote", "room_id": "uuid-123", "user_id": "...", "estimate": "5"}

    Show / Clear:
        {"type": "Show", "room_id": "uuid-123"}
        {"type": "Clear", "room_id": "uuid-123"}

    Server -> Client Events:
    ------------------------
    Room state:
        {"type": "RoomState", "room": {"id": "...", "revealed": false,
         "users": {"<user_id>": {"id": "...", "name": "alice", "estimate": null,
                                 "voted": true, "online": true}}}}

    Error:
        {"type": "Error", "message": "...", "code": "UserNotFound"}

    Lifecycle:
    ==========
    1. Connection accepted, sender task started
    2. Client sends Join (first visit) or Rejoin (stored user_id)
    3. Client receives every RoomState of its room, in command order
    4. On disconnect the routing is dropped; the user and their estimate stay
       so a reconnecting client can Rejoin
    5. Reconnecting is the client's job (fixed backoff, unbounded retries)

    Error Handling:
        - Invalid JSON / unknown type / bad fields: Error frame, connection stays
        - Unknown room or user: Error frame, connection stays
        - Anything unexpected: logged, connection cleaned up
    """
    connection = await state.connection_manager.connect(websocket)
    sender = asyncio.create_task(connection.run_sender())

    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Websocket input from %s: %s", connection.id, data)
            await state.gateway.handle_frame(connection, data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("WebSocket error on %s: %s", connection.id, e)
    finally:
        await state.gateway.disconnect(connection)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
