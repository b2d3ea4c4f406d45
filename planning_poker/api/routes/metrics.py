# planning_poker/api/routes/metrics.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from planning_poker.core.state import AppState, get_app_state

router = APIRouter()

@router.get("/metrics")
async def get_metrics(state: AppState = Depends(get_app_state)):
    """
    Usage metrics for the running process.

    Returns:
        dict: command statistics, uptime and capacity counters

    Example Response:
        {
            "commands_processed": 1200,
            "errors_returned": 3,
            "uptime_hours": 5.2,
            "commands_per_second": 0.06,
            "concurrent_connections": 14,
            "total_rooms": 4,
            "active_rooms_with_members": 3
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    gateway_stats = state.gateway.stats()

    if uptime_seconds > 0:
        commands_per_second = gateway_stats["commands_processed"] / uptime_seconds
    else:
        commands_per_second = 0

    return {
        # Statistics
        **gateway_stats,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "commands_per_second": round(commands_per_second, 2),

        # Capacity
        "concurrent_connections": state.connection_manager.connection_count(),
        "total_rooms": len(state.room_store),
        "active_rooms_with_members": len(state.connection_manager.rooms),
    }
