# planning_poker/services/session_gateway.py

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from planning_poker.core.exceptions import MalformedCommand, PlanningPokerError, RoomNotFound
from planning_poker.models.messages import (
    ClearCommand,
    Command,
    ErrorEvent,
    JoinCommand,
    JoinedEvent,
    RejoinCommand,
    ShowCommand,
    VoteCommand,
    decode_command,
)
from planning_poker.services.connection_manager import Connection, ConnectionManager
from planning_poker.services.room import Room, User
from planning_poker.services.room_store import RoomStore

logger = logging.getLogger(__name__)

# ============================================================================
# SESSION GATEWAY
# ============================================================================

class SessionGateway:
    """
    Protocol layer between the socket loop and the rooms.

    Flow for every inbound frame:
        1. Decode it into one typed command (MalformedCommand otherwise)
        2. Take the target room's lock
        3. Apply the command to the Room
        4. Queue the private Joined ack (Join/Rejoin only), then the
           RoomState broadcast, still under the lock
        5. Domain errors become an Error frame for the sender only

    Holding the room lock through step 4 is what gives every connection the
    same snapshot order as the room's command order.
    """

    def __init__(self, room_store: RoomStore, connections: ConnectionManager) -> None:
        self.room_store = room_store
        self.connections = connections
        self.commands_processed = 0
        self.errors_returned = 0

    async def handle_frame(self, connection: Connection, frame: str | bytes) -> None:
        try:
            command = decode_command(frame)
            await self.dispatch(connection, command)
        except PlanningPokerError as e:
            self.errors_returned += 1
            logger.warning("Rejected frame from %s: %s", connection.id, e)
            self.connections.send(connection, ErrorEvent(message=str(e), code=e.code))
        else:
            self.commands_processed += 1

    async def dispatch(self, connection: Connection, command: Command) -> None:
        previous_room = connection.room_id

        async with self._locked_room(command.room_id) as room:
            if isinstance(command, JoinCommand):
                self._bind(connection, room, room.join(command.name))
            elif isinstance(command, RejoinCommand):
                self._bind(connection, room, room.rejoin(command.user_id, command.name))
            elif isinstance(command, VoteCommand):
                room.vote(command.user_id, command.estimate)
            elif isinstance(command, ShowCommand):
                room.show()
            elif isinstance(command, ClearCommand):
                room.clear()
            else:
                raise MalformedCommand(f"unsupported command {type(command).__name__}")

            self.connections.broadcast(room.id, room.snapshot())

        # A connection that hopped rooms went offline in the old one
        if previous_room is not None and previous_room != connection.room_id:
            await self.broadcast_presence(previous_room)

    async def disconnect(self, connection: Connection) -> None:
        """Transport closed: drop routing and tell the room the user went offline."""
        room_id = self.connections.unregister(connection)
        if room_id is not None:
            await self.broadcast_presence(room_id)

    async def broadcast_presence(self, room_id: str) -> None:
        try:
            async with self._locked_room(room_id) as room:
                self.connections.broadcast(room.id, room.snapshot())
        except RoomNotFound:
            logger.debug("Room %s is gone, no presence update", room_id)

    def _bind(self, connection: Connection, room: Room, user: User) -> None:
        self.connections.register(connection, room.id, user.id)
        self.connections.send(connection, JoinedEvent(user_id=user.id, room_id=room.id))

    @asynccontextmanager
    async def _locked_room(self, room_id: str) -> AsyncIterator[Room]:
        room = self.room_store.get_room(room_id)
        async with room.lock:
            # The reaper may have removed the room while we waited for the lock
            if self.room_store.find_room(room_id) is not room:
                raise RoomNotFound(room_id)
            yield room

    def stats(self) -> dict:
        return {
            "commands_processed": self.commands_processed,
            "errors_returned": self.errors_returned,
        }

