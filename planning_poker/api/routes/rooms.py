# planning_poker/api/routes/rooms.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from planning_poker.core.exceptions import RoomNotFound
from planning_poker.core.state import AppState, get_app_state
from planning_poker.models.models import RoomList, RoomStats, RoomSummary, RoomView
from planning_poker.services import stats
from planning_poker.services.room import Room

router = APIRouter(prefix="/api", tags=["rooms"])

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

def _get_room(state: AppState, room_id: str) -> Room:
    try:
        return state.room_store.get_room(room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/create_room", response_model=str)
async def create_room(state: AppState = Depends(get_app_state)):
    """
    Create a new estimation room.

    The room lives in memory only and is reaped once it has had no
    connections for ROOM_IDLE_GRACE_SEC.

    Returns:
        str: the new room id
    """
    room = state.room_store.create_room()
    return room.id


@router.get("/rooms", response_model=RoomList)
async def list_rooms(state: AppState = Depends(get_app_state)):
    """List live rooms with their user and connection counts."""
    rooms = [
        RoomSummary(
            id=room.id,
            user_count=len(room.users),
            connection_count=state.connection_manager.connection_count(room.id),
            revealed=room.revealed,
        )
        for room in state.room_store.list_rooms()
    ]
    return RoomList(rooms=rooms)


@router.get("/room/{room_id}", response_model=RoomView)
async def get_room(room_id: str, state: AppState = Depends(get_app_state)):
    """
    Public view of a room.

    Estimates are masked until the room is revealed, exactly as other
    participants see them.

    Raises:
        HTTPException: 404 if room not found
    """
    room = _get_room(state, room_id)
    return room.snapshot().view(online=state.connection_manager.online_users(room_id))


@router.get("/room/{room_id}/mean", response_model=Optional[float])
async def get_mean(room_id: str, state: AppState = Depends(get_app_state)):
    """
    Mean of the numeric estimates of a revealed room.

    Returns:
        float | None: None while hidden or when nobody voted a number

    Raises:
        HTTPException: 404 if room not found
    """
    room = _get_room(state, room_id)
    return stats.mean(room.snapshot())


@router.get("/room/{room_id}/stats", response_model=RoomStats)
async def get_stats(room_id: str, state: AppState = Depends(get_app_state)):
    """
    Summary of the current round (count, mean, median, range, distribution).

    Raises:
        HTTPException: 404 if room not found
    """
    room = _get_room(state, room_id)
    return stats.summarize(room.snapshot())
