"""
Purpose: Domain models for pickup requests.
What it does:
- Defines core data structures:
- Address (postal fields, optional latitude/longitude until geocoded)
- PickupRequest (rider, address, service day, status, driver, route, leg metrics)

Defines enums/constants:
- PickupStatus = PENDING | ACCEPTED | COMPLETED | CANCELLED

Rule: No distance math, no store access. Models only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from routing.distance import Coordinates, is_valid_coordinate


class PickupStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Address:
    """
    A rider's address. latitude/longitude stay None until geocoded.
    """
    street: str
    city: str
    province: str = ""
    postal_code: str = ""
    country: str = "Canada"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_default: bool = False
    id: Optional[str] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        """
        None when the address is not geocoded (or holds unusable values).
        """
        if self.latitude is None or self.longitude is None:
            return None
        if not is_valid_coordinate(self.latitude, self.longitude):
            return None
        return Coordinates(lat=float(self.latitude), lng=float(self.longitude))

    @property
    def label(self) -> str:
        return f"{self.street}, {self.city}"


@dataclass(frozen=True)
class PickupRequest:
    """
    A rider's request for transport on one service day.

    route_id points at the non-cancelled route the request is attached to.
    distance_km / estimated_minutes are the leg metrics written at planning time.
    """
    id: str
    organization_id: str
    user_id: str
    address: Address
    service_day_id: str
    status: PickupStatus = PickupStatus.PENDING
    driver_id: Optional[str] = None
    route_id: Optional[str] = None
    distance_km: Optional[float] = None
    estimated_minutes: Optional[float] = None
    priority: int = 0
    notes: str = ""

    @property
    def is_assignable(self) -> bool:
        return self.status == PickupStatus.PENDING and self.route_id is None
