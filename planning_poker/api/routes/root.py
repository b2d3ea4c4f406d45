# planning_poker/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Planning Poker",
        "version": "1.0",
        "features": ["ephemeral_rooms", "hidden_votes", "rejoin", "stats"],
        "endpoints": {
            "websocket": "/ws",
            "create_room": "/api/create_room",
            "rooms": "/api/rooms",
            "mean": "/api/room/{room_id}/mean",
            "stats": "/api/room/{room_id}/stats",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
