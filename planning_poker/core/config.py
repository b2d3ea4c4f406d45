# planning_poker/core/config.py
import os
from typing import List

from dotenv import load_dotenv


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Setup environment variables.
        - LOG_LEVEL the root logger level
        - ROOM_IDLE_GRACE_SEC how long a room may sit with zero connections before it is reaped
        - REAP_INTERVAL_SEC how often the reaper runs (0 disables it)
        - OUTBOUND_QUEUE_SIZE per-connection buffer of pending frames
        - ESTIMATE_DECK comma separated list of accepted estimates (empty accepts any token)
    """

    # Load environment variables from the .env file
    load_dotenv()

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    ROOM_IDLE_GRACE_SEC: float = float(os.getenv("ROOM_IDLE_GRACE_SEC", "300"))
    REAP_INTERVAL_SEC: float = float(os.getenv("REAP_INTERVAL_SEC", "30"))

    OUTBOUND_QUEUE_SIZE: int = int(os.getenv("OUTBOUND_QUEUE_SIZE", "100"))

    ESTIMATE_DECK: List[str] = _split_csv(os.getenv("ESTIMATE_DECK", ""))

    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))

settings = Settings()
