# planning_poker/services/room_store.py

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from typing import Callable, Dict, Iterable, List, Optional

from planning_poker.core.exceptions import RoomNotFound
from planning_poker.services.room import Room

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM STORE
# ============================================================================

class RoomStore:
    """
    Owns every live room of the process.

    Rooms are ephemeral: the store starts empty, rooms are added by the
    create-room endpoint and removed either by ``reap_idle`` or by ``clear``
    on shutdown. Nothing is persisted.

    Attributes:
        rooms: room_id -> Room. Guarded by a lock so HTTP handlers, the socket
            gateway and the reaper never observe a half-applied insert/remove.

    Usage:
        store = RoomStore(deck=["1", "2", "3", "5", "8", "?"])
        room = store.create_room()
        same = store.get_room(room.id)
    """

    def __init__(self, deck: Iterable[str] = ()) -> None:
        self.rooms: Dict[str, Room] = {}
        self.deck = tuple(deck)
        self._lock = threading.Lock()

    def create_room(self) -> Room:
        """
        Create a room with a fresh opaque id.

        Returns:
            Room: the newly created, still empty room
        """
        with self._lock:
            room_id = str(uuid.uuid4())
            while room_id in self.rooms:
                room_id = str(uuid.uuid4())
            room = Room(room_id, deck=self.deck)
            self.rooms[room_id] = room
        logger.info("✓ Created room %s", room_id)
        return room

    def get_room(self, room_id: str) -> Room:
        """
        Get a room by ID.

        Raises:
            RoomNotFound: no live room has this id
        """
        room = self.find_room(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def find_room(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self.rooms.get(room_id)

    def list_rooms(self) -> List[Room]:
        with self._lock:
            return list(self.rooms.values())

    def delete_room(self, room_id: str) -> bool:
        """
        Remove a room.

        Returns:
            True if room was deleted, False if room didn't exist
        """
        with self._lock:
            room = self.rooms.pop(room_id, None)
        if room is None:
            return False
        logger.info("✓ Deleted room %s", room_id)
        return True

    def reap_idle(
        self,
        grace_sec: float,
        has_connections: Callable[[str], bool],
        now: Optional[float] = None,
    ) -> List[str]:
        """
        Remove rooms that have had no live connection for longer than ``grace_sec``.

        Returns:
            ids of the removed rooms
        """
        reaped: List[str] = []
        with self._lock:
            for room_id, room in list(self.rooms.items()):
                if has_connections(room_id):
                    continue
                if room.idle_for(now) > grace_sec:
                    del self.rooms[room_id]
                    reaped.append(room_id)
        for room_id in reaped:
            logger.info("✗ Reaped idle room %s", room_id)
        return reaped

    def clear(self) -> None:
        with self._lock:
            count = len(self.rooms)
            self.rooms.clear()
        logger.info("Dropped %d rooms", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self.rooms)


async def run_reaper(
    store: RoomStore,
    has_connections: Callable[[str], bool],
    interval_sec: float,
    grace_sec: float,
) -> None:
    """Background task: periodically reap idle rooms until cancelled."""
    logger.info("Room reaper started (every %ss, grace %ss)", interval_sec, grace_sec)
    while True:
        await asyncio.sleep(interval_sec)
        try:
            store.reap_idle(grace_sec, has_connections)
        except Exception:
            logger.exception("Room reaper pass failed")
