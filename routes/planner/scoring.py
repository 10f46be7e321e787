"""
Purpose: Derived metrics for a sequenced route.
What it does:
- leg travel minutes (distance at average city speed + dwell time)
- route total distance over the known legs
- optimization score (0-100, fewer km per stop is better)
"""

from __future__ import annotations

from typing import Iterable, Optional

from .policy import PlannerPolicy
from .sequencing import SequencedLeg


def leg_minutes(distance_km: Optional[float], policy: PlannerPolicy) -> Optional[float]:
    if distance_km is None:
        return None
    return (distance_km / policy.average_speed_kmh) * 60 + policy.dwell_minutes


def total_distance(legs: Iterable[SequencedLeg]) -> Optional[float]:
    """
    Sum of the known leg distances. None when no leg distance is known at all.
    """
    known = [leg.distance_km for leg in legs if leg.distance_km is not None]
    if not known:
        return None
    return sum(known)


def total_minutes(minutes: Iterable[Optional[float]]) -> Optional[int]:
    known = [value for value in minutes if value is not None]
    if not known:
        return None
    return int(round(sum(known)))


def optimization_score(total_km: Optional[float], located_stops: int, policy: PlannerPolicy) -> Optional[int]:
    """
    100 at or below target_km_per_stop, losing score_penalty_per_km per extra km.
    """
    if total_km is None or located_stops <= 0:
        return None

    km_per_stop = total_km / located_stops
    score = 100 - (km_per_stop - policy.target_km_per_stop) * policy.score_penalty_per_km
    return int(round(min(100.0, max(0.0, score))))
