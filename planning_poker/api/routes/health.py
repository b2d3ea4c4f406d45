# planning_poker/api/routes/health.py

from fastapi import APIRouter, Depends

from planning_poker.core.state import AppState, get_app_state

router = APIRouter()

@router.get("/health")
async def health(state: AppState = Depends(get_app_state)):
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.

    Returns:
        dict: Status, connection count, room count, active room count
    """
    return {
        "status": "healthy",
        "connections": state.connection_manager.connection_count(),
        "rooms": len(state.room_store),
        "active_rooms_with_members": len(state.connection_manager.rooms),
    }
