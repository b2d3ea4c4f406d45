# planning_poker/services/stats.py
"""
Aggregate statistics over a room snapshot.

Pure functions: they only read the snapshot they are given. Hidden rounds
never produce numbers, so these are safe to expose on public endpoints.
"""
from __future__ import annotations

import re
import statistics
from collections import Counter
from typing import List, Optional

from planning_poker.models.models import RoomSnapshot, RoomStats

# Plain ASCII decimals only; float() alone would take "1_000", " 5 " or "nan"
_NUMBER = re.compile(r"-?[0-9]+(?:\.[0-9]+)?")


def numeric_value(estimate: Optional[str]) -> Optional[float]:
    """Return the estimate as a float, or None for symbolic tokens like "?"."""
    if estimate is None or not _NUMBER.fullmatch(estimate):
        return None
    return float(estimate)


def numeric_estimates(snapshot: RoomSnapshot) -> List[float]:
    values = (numeric_value(user.estimate) for user in snapshot.users.values())
    return [value for value in values if value is not None]


def mean(snapshot: RoomSnapshot) -> Optional[float]:
    """
    Arithmetic mean of the numeric estimates.

    Symbolic tokens count in neither the numerator nor the denominator.
    Returns None while the room is hidden or when nobody voted a number.
    """
    if not snapshot.revealed:
        return None
    values = numeric_estimates(snapshot)
    if not values:
        return None
    return sum(values) / len(values)


def summarize(snapshot: RoomSnapshot) -> RoomStats:
    votes = [user.estimate for user in snapshot.users.values() if user.estimate is not None]
    if not snapshot.revealed:
        return RoomStats(revealed=False, votes=len(votes))

    values = numeric_estimates(snapshot)
    return RoomStats(
        revealed=True,
        votes=len(votes),
        numeric_votes=len(values),
        mean=mean(snapshot),
        median=statistics.median(values) if values else None,
        min=min(values) if values else None,
        max=max(values) if values else None,
        distribution=dict(Counter(votes).most_common()),
    )
