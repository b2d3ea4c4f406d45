# planning_poker/services/connection_manager.py

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set, Union

from fastapi import WebSocket

from planning_poker.models.messages import RoomStateEvent, ServerEvent, encode_event
from planning_poker.models.models import RoomSnapshot
from planning_poker.services.room_store import RoomStore

logger = logging.getLogger(__name__)

CLOSE_SUPERSEDED = 4001
CLOSE_TOO_SLOW = 1013
CLOSE_GOING_AWAY = 1001


@dataclass(frozen=True)
class _Close:
    code: int
    reason: str


# ============================================================================
# CONNECTION
# ============================================================================

class Connection:
    """
    One live WebSocket plus its outbound buffer.

    Frames are never written to the socket by the code that produced them:
    ``send`` only enqueues, and ``run_sender`` (one task per connection)
    drains the queue. A stalled peer therefore fills its own queue and is
    dropped, instead of holding up a room lock or other recipients.
    """

    def __init__(self, websocket: WebSocket, queue_size: int = 100) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.websocket = websocket
        self.room_id: Optional[str] = None
        self.user_id: Optional[str] = None
        self.outbox: asyncio.Queue[Union[str, _Close]] = asyncio.Queue(maxsize=max(1, queue_size))
        self.closed = False

    def send(self, frame: str) -> bool:
        """Enqueue a frame. Returns False if the connection is closed or its buffer is full."""
        if self.closed:
            return False
        try:
            self.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def close(self, code: int, reason: str = "") -> None:
        """Drop pending frames and ask the sender task to close the socket."""
        if self.closed:
            return
        self.closed = True
        while not self.outbox.empty():
            self.outbox.get_nowait()
        self.outbox.put_nowait(_Close(code, reason))

    async def run_sender(self) -> None:
        while True:
            item = await self.outbox.get()
            if isinstance(item, _Close):
                try:
                    await self.websocket.close(code=item.code, reason=item.reason)
                except Exception as e:
                    logger.debug("Close on %s failed (peer already gone): %s", self.id, e)
                return
            try:
                await self.websocket.send_text(item)
            except Exception as e:
                logger.error("Send error on %s: %s", self.id, e)
                self.closed = True
                return

    @property
    def identified(self) -> bool:
        return self.user_id is not None

    def __repr__(self) -> str:
        return f"Connection({self.id}, room={self.room_id}, user={self.user_id})"


# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Routes snapshots to the live connections of each room.

    Data Structures:
        rooms: room_id -> {user_id -> Connection}
               Example: {"uuid-123": {"user-a": conn1, "user-b": conn2}}
               Keyed by user so there is at most one live connection per
               user; registering a second one supersedes the first.

        connections: every accepted connection, identified or not

    Room/User data is never touched here. A disconnect only removes routing,
    so the user and their estimate survive until they rejoin.
    """

    def __init__(self, room_store: RoomStore, queue_size: int = 100) -> None:
        """Initialize connection manager with empty data structures."""
        self.rooms: Dict[str, Dict[str, Connection]] = {}
        self.connections: Set[Connection] = set()
        self.room_store = room_store
        self.queue_size = queue_size

    async def connect(self, websocket: WebSocket) -> Connection:
        """
        Accept a new WebSocket connection.

        The connection has no identity until a Join/Rejoin registers it.
        """
        await websocket.accept()
        connection = Connection(websocket, queue_size=self.queue_size)
        self.connections.add(connection)
        logger.info("✓ Connection %s opened. Total: %d", connection.id, len(self.connections))
        return connection

    def register(self, connection: Connection, room_id: str, user_id: str) -> Optional[Connection]:
        """
        Bind a connection to (room_id, user_id).

        If another live connection already holds that user, it is unbound and
        closed with ``CLOSE_SUPERSEDED``. If this connection was bound to a
        different room/user, that binding is released first.

        Returns:
            The superseded connection, if any
        """
        if connection.room_id is not None and (connection.room_id, connection.user_id) != (room_id, user_id):
            self._unbind(connection)

        members = self.rooms.setdefault(room_id, {})
        previous = members.get(user_id)
        if previous is not None and previous is not connection:
            previous.room_id = None
            previous.user_id = None
            previous.close(CLOSE_SUPERSEDED, "superseded by a newer connection")
            logger.info("⇄ %s superseded %s for user %s", connection.id, previous.id, user_id)
        else:
            previous = None

        members[user_id] = connection
        connection.room_id = room_id
        connection.user_id = user_id

        room = self.room_store.find_room(room_id)
        if room is not None:
            room.mark_active()

        logger.info("→ %s bound to room %s as %s (%d online)", connection.id, room_id, user_id, len(members))
        return previous

    def unregister(self, connection: Connection) -> Optional[str]:
        """
        Handle WebSocket disconnection and cleanup.

        Returns:
            The room the connection was bound to, if it was still bound
        """
        self.connections.discard(connection)
        room_id = self._unbind(connection)
        logger.info("✗ Connection %s closed. Total: %d", connection.id, len(self.connections))
        return room_id

    def _unbind(self, connection: Connection) -> Optional[str]:
        room_id, user_id = connection.room_id, connection.user_id
        connection.room_id = None
        connection.user_id = None
        if room_id is None:
            return None

        members = self.rooms.get(room_id)
        if members is not None and members.get(user_id) is connection:
            del members[user_id]
            if not members:
                del self.rooms[room_id]
                room = self.room_store.find_room(room_id)
                if room is not None:
                    room.mark_idle()
        return room_id

    def send(self, connection: Connection, event: ServerEvent) -> bool:
        """Unicast one event to a single connection."""
        return connection.send(encode_event(event))

    def broadcast(self, room_id: str, snapshot: RoomSnapshot) -> int:
        """
        Deliver a snapshot to every connection bound to a room.

        Each recipient gets its own rendering: its own estimate stays visible
        before the reveal, everyone else's is masked.

        Error Handling:
            A connection whose buffer is full (or already closed) is dropped
            and closed with ``CLOSE_TOO_SLOW``; the others still receive the
            frame, followed by a second rendering of the same snapshot in
            which the dropped users are offline.

        Returns:
            Number of connections the first frame was queued for
        """
        members = self.rooms.get(room_id)
        if not members:
            logger.info("[routing] Skipped broadcast: room=%s has 0 connections", room_id)
            return 0

        online = frozenset(members)
        dropped: List[Connection] = []
        delivered = 0
        for connection in list(members.values()):
            event = RoomStateEvent(room=snapshot.view(connection.user_id, online))
            if connection.send(encode_event(event)):
                delivered += 1
            else:
                dropped.append(connection)

        for connection in dropped:
            logger.warning("Dropping slow connection %s in room %s", connection.id, room_id)
            self._unbind(connection)
            connection.close(CLOSE_TOO_SLOW, "outbound buffer full")

        # Survivors rendered the drops as online; terminates as members shrink
        if dropped and self.rooms.get(room_id):
            self.broadcast(room_id, snapshot)

        logger.debug("📨 Broadcast to room %s: %d clients", room_id, delivered)
        return delivered

    def online_users(self, room_id: str) -> FrozenSet[str]:
        return frozenset(self.rooms.get(room_id, {}))

    def connection_count(self, room_id: Optional[str] = None) -> int:
        if room_id is None:
            return len(self.connections)
        return len(self.rooms.get(room_id, {}))

    def has_connections(self, room_id: str) -> bool:
        return bool(self.rooms.get(room_id))

    def close_all(self, code: int = CLOSE_GOING_AWAY) -> None:
        for connection in list(self.connections):
            connection.close(code, "server shutting down")
        self.rooms.clear()
