# planning_poker/services/room.py

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from planning_poker.core.exceptions import InvalidEstimate, UserNotFound
from planning_poker.models.models import RoomSnapshot, UserSnapshot

logger = logging.getLogger(__name__)


@dataclass
class User:
    id: str
    name: str
    estimate: Optional[str] = None


# ============================================================================
# ROOM STATE MACHINE
# ============================================================================

class Room:
    """
    Authoritative state of one estimation session.

    The only real state machine is the reveal cycle:

        Hidden --show()--> Revealed --clear()--> Hidden (estimates reset)

    Votes never move the reveal flag. A vote cast while revealed is stored
    and visible right away.

    Concurrency:
        The mutating methods are plain synchronous code. Callers that also
        broadcast the result must hold ``lock`` around "mutate + snapshot +
        enqueue" so every connection sees snapshots in command order.

    Attributes:
        id: immutable room identifier
        users: user_id -> User, in join order
        revealed: room-wide reveal flag
        deck: accepted estimate tokens; empty accepts any non-empty token
        idle_since: monotonic time the room last had zero live connections,
            or None while someone is connected
    """

    def __init__(self, room_id: str, deck: Iterable[str] = ()) -> None:
        self.id = room_id
        self.users: Dict[str, User] = {}
        self.revealed = False
        self.deck = frozenset(deck)
        self.lock = asyncio.Lock()
        self.created_at = time.monotonic()
        self.idle_since: Optional[float] = self.created_at

    def join(self, name: str) -> User:
        user = User(id=self._new_user_id(), name=name)
        self.users[user.id] = user
        logger.info("→ %s joined room %s as %s", name, self.id, user.id)
        return user

    def rejoin(self, user_id: str, name: str) -> User:
        """
        Reattach a previously issued identity.

        The stored name is overwritten; estimate and reveal flag are kept.
        An unknown id is an error: handing out a fresh identity here would
        leave the client holding a token the server does not know.
        """
        user = self.get_user(user_id)
        user.name = name
        logger.info("↻ %s rejoined room %s", user_id, self.id)
        return user

    def vote(self, user_id: str, estimate: str) -> User:
        user = self.get_user(user_id)
        token = estimate.strip() if isinstance(estimate, str) else ""
        if not token or (self.deck and token not in self.deck):
            raise InvalidEstimate(estimate)
        user.estimate = token
        return user

    def show(self) -> None:
        self.revealed = True

    def clear(self) -> None:
        self.revealed = False
        for user in self.users.values():
            user.estimate = None

    def get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFound(self.id, user_id)
        return user

    def snapshot(self) -> RoomSnapshot:
        return RoomSnapshot(
            id=self.id,
            users={
                uid: UserSnapshot(id=u.id, name=u.name, estimate=u.estimate)
                for uid, u in self.users.items()
            },
            revealed=self.revealed,
        )

    # ---- presence bookkeeping for the reaper ----

    def mark_active(self) -> None:
        self.idle_since = None

    def mark_idle(self, now: Optional[float] = None) -> None:
        if self.idle_since is None:
            self.idle_since = time.monotonic() if now is None else now

    def idle_for(self, now: Optional[float] = None) -> float:
        if self.idle_since is None:
            return 0.0
        return (time.monotonic() if now is None else now) - self.idle_since

    def _new_user_id(self) -> str:
        user_id = str(uuid.uuid4())
        while user_id in self.users:
            user_id = str(uuid.uuid4())
        return user_id
