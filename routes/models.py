"""
Purpose: Domain models for the Routes capability.
What it does:
- Defines core data structures:
- Route (tenant, driver, service day, date, ordered stops, totals, lifecycle timestamps)
- Stop (pickup request, 0-based position, leg distance / minutes)

Defines enums/constants:
- RouteStatus = PLANNED | IN_PROGRESS | COMPLETED | CANCELLED

Rule: No sequencing logic, no store access. Models only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from routing.distance import Coordinates


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RouteStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (RouteStatus.COMPLETED, RouteStatus.CANCELLED)


@dataclass(frozen=True)
class Stop:
    """
    One visit in a route. leg_distance_km is measured from the previous stop
    (or the start location for position 0); None when the pickup address
    could not be located.
    """
    pickup_request_id: str
    position: int
    leg_distance_km: Optional[float] = None
    leg_minutes: Optional[float] = None
    coordinates: Optional[Coordinates] = None


@dataclass(frozen=True)
class Route:
    """
    A planned sequence of stops for one driver on one service day.
    Stops are immutable once created; status and timestamps move through
    the lifecycle manager only.
    """
    id: str
    organization_id: str
    driver_id: str
    service_day_id: str
    route_date: date
    stops: Tuple[Stop, ...]
    start_location: Coordinates
    total_distance_km: Optional[float] = None
    estimated_minutes: Optional[int] = None
    optimization_score: Optional[int] = None
    status: RouteStatus = RouteStatus.PLANNED

    planned_start_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def pickup_request_ids(self) -> Tuple[str, ...]:
        return tuple(stop.pickup_request_id for stop in self.stops)

    @property
    def stop_count(self) -> int:
        return len(self.stops)

    @staticmethod # Factory method to create a Route from a computed stop sequence
    def new(
        organization_id: str,
        driver_id: str,
        service_day_id: str,
        route_date: date,
        stops: Tuple[Stop, ...],
        start_location: Coordinates,
        total_distance_km: Optional[float],
        estimated_minutes: Optional[int] = None,
        optimization_score: Optional[int] = None,
        planned_start_time: Optional[datetime] = None,
    ) -> Route:
        now = utcnow()
        return Route(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            driver_id=driver_id,
            service_day_id=service_day_id,
            route_date=route_date,
            stops=tuple(stops),
            start_location=start_location,
            total_distance_km=total_distance_km,
            estimated_minutes=estimated_minutes,
            optimization_score=optimization_score,
            planned_start_time=planned_start_time,
            created_at=now,
            updated_at=now,
        )
