# planning_poker/models/models.py
from __future__ import annotations

from typing import AbstractSet, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class UserSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    estimate: Optional[str] = None


class RoomSnapshot(BaseModel):
    """
    Full, unmasked state of a room at one point in its command order.

    Snapshots never leave the process as-is: the wire representation is
    produced by ``view()``, which hides estimates until the room is revealed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    users: Dict[str, UserSnapshot]
    revealed: bool = False

    def view(
        self,
        viewer_id: Optional[str] = None,
        online: AbstractSet[str] = frozenset(),
    ) -> RoomView:
        """
        Build the room as one recipient is allowed to see it.

        Args:
            viewer_id: user the view is rendered for; that user always sees
                their own estimate. ``None`` renders a fully public view.
            online: user ids that currently hold a live connection.
        """
        users = {}
        for user_id, user in self.users.items():
            visible = self.revealed or user_id == viewer_id
            users[user_id] = UserView(
                id=user.id,
                name=user.name,
                estimate=user.estimate if visible else None,
                voted=user.estimate is not None,
                online=user_id in online,
            )
        return RoomView(id=self.id, users=users, revealed=self.revealed)


class UserView(BaseModel):
    id: str
    name: str
    estimate: Optional[str] = None
    voted: bool = False
    online: bool = False


class RoomView(BaseModel):
    id: str
    users: Dict[str, UserView]
    revealed: bool


class RoomStats(BaseModel):
    revealed: bool
    votes: int
    numeric_votes: int = 0
    mean: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    distribution: Dict[str, int] = {}


class RoomSummary(BaseModel):
    id: str
    user_count: int
    connection_count: int
    revealed: bool


class RoomList(BaseModel):
    rooms: List[RoomSummary]
