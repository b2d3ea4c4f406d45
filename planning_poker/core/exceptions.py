"""
Domain exceptions.

All of them are recoverable: the session gateway turns them into a unicast
``Error`` frame and the HTTP routes into 4xx responses.
"""


class PlanningPokerError(Exception):
    """Base class for every domain error."""

    @property
    def code(self) -> str:
        return type(self).__name__


# ============ Room ============

class RoomNotFound(PlanningPokerError):
    """Room does not exist (never created, or already reaped)."""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


# ============ User ============

class UserNotFound(PlanningPokerError):
    """User id is not known in the target room."""
    def __init__(self, room_id, user_id):
        self.room_id = room_id
        self.user_id = user_id
        super().__init__(f"User {user_id} not found in room {room_id}")


# ============ Commands ============

class MalformedCommand(PlanningPokerError):
    """Inbound frame could not be decoded into a known command."""
    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"Malformed command: {detail}")


class InvalidEstimate(PlanningPokerError):
    """Estimate is empty or not part of the configured deck."""
    def __init__(self, estimate):
        self.estimate = estimate
        super().__init__(f"Invalid estimate: {estimate!r}")
