"""
Purpose: Persistence boundary for routes, stops and the pickup requests they claim.
What it does:
- RouteStore: the contract every backing store implements
- InMemoryRouteStore: dict-backed store with a serialised unit of work

Provides operations:
   - get_route(scope, route_id)
   - list_routes(scope, driver_id, date_from, date_to)    newest first
   - routes_between(scope, date_from, date_to)           analytics window
   - get_pickup_requests(scope, request_ids)
   - require_driver / require_service_day
   - save_route(scope, route)                            atomic create + claim
   - apply_transition(scope, route_id, transition)       atomic status change (+ release on cancel)

Rule: Every call is filtered by the scope's organization. Store owns
atomicity; planner and lifecycle own the decisions.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from pickups.models import PickupRequest
from tenancy.context import TenantScope, require_scope, scope_violation, security_logger

from .errors import NotFoundError, ValidationError
from .models import Route, RouteStatus
from .state_machines.pickup_state import accept_requests_for_route, release_requests_from_route

Transition = Callable[[Route], Route]


def check_route_for_save(organization_id: str, route: Route) -> None:
    """
    Structural checks shared by every store implementation before a write.
    """
    if route.organization_id != organization_id:
        raise scope_violation(
            f"route {route.id} belongs to organization {route.organization_id}, "
            f"scope is {organization_id}"
        )
    if not route.stops:
        raise ValidationError("A route must contain at least one stop")

    positions = [stop.position for stop in route.stops]
    if positions != list(range(len(route.stops))):
        raise ValidationError(f"Stop positions must be contiguous from 0, got {positions}")

    request_ids = route.pickup_request_ids
    if len(set(request_ids)) != len(request_ids):
        raise ValidationError("A pickup request can appear only once in a route")


def in_date_window(route_date: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from is not None and route_date < date_from:
        return False
    if date_to is not None and route_date > date_to:
        return False
    return True


def newest_first(routes: Iterable[Route]) -> List[Route]:
    return sorted(routes, key=lambda route: (route.route_date, route.created_at), reverse=True)


class RouteStore(ABC):
    """
    Contract of the backing store used by planner, lifecycle and analytics.
    """

    @abstractmethod
    def get_route(self, scope: TenantScope, route_id: str) -> Route:
        ...

    @abstractmethod
    def list_routes(
        self,
        scope: TenantScope,
        driver_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Route]:
        ...

    @abstractmethod
    def routes_between(self, scope: TenantScope, date_from: date, date_to: date) -> List[Route]:
        ...

    @abstractmethod
    def get_pickup_requests(self, scope: TenantScope, request_ids: Sequence[str]) -> List[PickupRequest]:
        ...

    @abstractmethod
    def require_driver(self, scope: TenantScope, driver_id: str) -> None:
        ...

    @abstractmethod
    def require_service_day(self, scope: TenantScope, service_day_id: str) -> None:
        ...

    @abstractmethod
    def save_route(self, scope: TenantScope, route: Route) -> Route:
        """
        Create the route, its stops and claim its pickup requests in one
        transaction. The claim is re-checked inside the transaction: any
        request not PENDING or already on a route -> ConflictError, nothing written.
        """
        ...

    @abstractmethod
    def apply_transition(self, scope: TenantScope, route_id: str, transition: Transition) -> Route:
        """
        Read the route for update, apply `transition`, persist the result.
        When the result is CANCELLED the route's requests are released in
        the same transaction.
        """
        ...


@dataclass
class InMemoryRouteStore(RouteStore):
    """
    In-memory store for tests, scripts and single-process deployments.

    All writes go through _unit_of_work(): one re-entrant lock serialises
    them and a snapshot of both tables is restored if anything raises.
    Records are frozen dataclasses, so handing them out never leaks mutable state.
    """
    _routes: Dict[str, Route] = field(default_factory=dict)
    _pickups: Dict[str, PickupRequest] = field(default_factory=dict)
    _drivers: Dict[str, str] = field(default_factory=dict)  # driver id -> organization id
    _service_days: Dict[str, str] = field(default_factory=dict)  # service day id -> organization id
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # --- Seeding (collaborator data owned elsewhere in the app) ---

    def add_driver(self, organization_id: str, driver_id: str) -> None:
        with self._lock:
            self._drivers[str(driver_id)] = str(organization_id)

    def add_service_day(self, organization_id: str, service_day_id: str) -> None:
        with self._lock:
            self._service_days[str(service_day_id)] = str(organization_id)

    def add_pickup_request(self, request: PickupRequest) -> None:
        with self._lock:
            self._pickups[request.id] = request

    # --- Unit of work ---

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        with self._lock:
            routes_snapshot = dict(self._routes)
            pickups_snapshot = dict(self._pickups)
            try:
                yield
            except BaseException:
                self._routes = routes_snapshot
                self._pickups = pickups_snapshot
                raise

    def _put_route(self, route: Route) -> None:
        self._routes[route.id] = route

    def _put_pickup(self, request: PickupRequest) -> None:
        self._pickups[request.id] = request

    # --- Reads ---

    def get_route(self, scope: TenantScope, route_id: str) -> Route:
        organization_id = require_scope(scope)
        with self._lock:
            route = self._routes.get(str(route_id))
        if route is None:
            raise NotFoundError(f"Route {route_id} not found")
        if route.organization_id != organization_id:
            security_logger.warning(
                f"Organization {organization_id} looked up route {route_id} of another organization"
            )
            raise NotFoundError(f"Route {route_id} not found")
        return route

    def list_routes(self, scope, driver_id, date_from=None, date_to=None) -> List[Route]:
        organization_id = require_scope(scope)
        driver_id = str(driver_id)
        with self._lock:
            driver_organization = self._drivers.get(driver_id)
            if driver_organization is not None and driver_organization != organization_id:
                raise scope_violation(
                    f"organization {organization_id} listed routes of driver {driver_id} "
                    f"from organization {driver_organization}"
                )
            routes = [
                route for route in self._routes.values()
                if route.organization_id == organization_id
                and route.driver_id == driver_id
                and in_date_window(route.route_date, date_from, date_to)
            ]
        return newest_first(routes)

    def routes_between(self, scope, date_from, date_to) -> List[Route]:
        organization_id = require_scope(scope)
        with self._lock:
            routes = [
                route for route in self._routes.values()
                if route.organization_id == organization_id
                and in_date_window(route.route_date, date_from, date_to)
            ]
        return newest_first(routes)

    def get_pickup_requests(self, scope, request_ids) -> List[PickupRequest]:
        organization_id = require_scope(scope)
        found: List[PickupRequest] = []
        missing: List[str] = []
        with self._lock:
            for request_id in request_ids:
                request = self._pickups.get(str(request_id))
                if request is None or request.organization_id != organization_id:
                    missing.append(str(request_id))
                else:
                    found.append(request)
        if missing:
            raise NotFoundError(f"Pickup request(s) not found: {', '.join(missing)}")
        return found

    def get_pickup_request(self, scope: TenantScope, request_id: str) -> PickupRequest:
        return self.get_pickup_requests(scope, [request_id])[0]

    def require_driver(self, scope, driver_id) -> None:
        organization_id = require_scope(scope)
        with self._lock:
            if self._drivers.get(str(driver_id)) != organization_id:
                raise NotFoundError(f"Driver {driver_id} not found")

    def require_service_day(self, scope, service_day_id) -> None:
        organization_id = require_scope(scope)
        with self._lock:
            if self._service_days.get(str(service_day_id)) != organization_id:
                raise NotFoundError(f"Service day {service_day_id} not found")

    # --- Writes ---

    def save_route(self, scope, route) -> Route:
        organization_id = require_scope(scope)
        check_route_for_save(organization_id, route)

        with self._unit_of_work():
            if route.id in self._routes:
                raise ValidationError(f"Route {route.id} already exists")

            #fresh read inside the lock: this is the exclusive claim
            requests = self.get_pickup_requests(scope, route.pickup_request_ids)
            accepted = accept_requests_for_route(requests, route)

            self._put_route(route)
            for request in accepted:
                self._put_pickup(request)

        return route

    def apply_transition(self, scope, route_id, transition) -> Route:
        require_scope(scope)

        with self._unit_of_work():
            current = self.get_route(scope, route_id)
            updated = transition(current)
            self._put_route(updated)

            if updated.status == RouteStatus.CANCELLED:
                attached = [
                    request for request in self._pickups.values()
                    if request.route_id == updated.id
                ]
                for request in release_requests_from_route(attached, updated.id):
                    self._put_pickup(request)

        return updated
