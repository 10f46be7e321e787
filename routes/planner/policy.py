"""
Purpose: Central configuration for route planning (single source of truth).
What it does:

Stores all tunable thresholds:

AVERAGE_SPEED_KMH = 30        (city driving, used for leg minutes)
DWELL_MINUTES = 2             (time spent at each pickup)
TARGET_KM_PER_STOP = 2.0      (optimization score reaches 100 at or below this)
SCORE_PENALTY_PER_KM = 10     (score lost per km above the target)
HONOR_PRIORITY = True         (priority > 0 requests are sequenced first)
MAX_STOPS = 100               (guard for the O(n^2) nearest-neighbor loop)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlannerPolicy:
    """
    Central configuration for the route planner.
    """

    # --- Travel time estimate ---
    average_speed_kmh: float = 30.0
    dwell_minutes: float = 2.0

    # --- Optimization score ---
    # score = 100 - (km_per_stop - target_km_per_stop) * score_penalty_per_km, clamped to [0, 100]
    target_km_per_stop: float = 2.0
    score_penalty_per_km: float = 10.0

    # --- Sequencing ---
    # Priority requests go first; with every priority at 0 this is plain nearest-neighbor.
    honor_priority: bool = True

    # Single-digit to low tens of stops is the normal case.
    max_stops: int = 100

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")

        if self.dwell_minutes < 0:
            raise ValueError("dwell_minutes must be >= 0")

        if self.target_km_per_stop < 0:
            raise ValueError("target_km_per_stop must be >= 0")

        if self.score_penalty_per_km < 0:
            raise ValueError("score_penalty_per_km must be >= 0")

        if self.max_stops < 1:
            raise ValueError("max_stops must be >= 1")


def default_planner_policy() -> PlannerPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PlannerPolicy()
    p.validate()
    return p
