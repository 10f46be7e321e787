import logging
import threading
from datetime import timedelta

import pytest

from routes.errors import ConflictError, NotFoundError, ValidationError
from routes.models import RouteStatus, utcnow
from routes.notifications import RouteNotifier
from routes.service import RouteOptimizationService
from tenancy.context import establish_scope
from tenancy.errors import ScopeError
from tenancy.models import CallerIdentity, UserRole

from conftest import ORG, SUNDAY


class RecordingNotifier(RouteNotifier):
    def __init__(self):
        self.events = []

    def route_planned(self, route):
        self.events.append(("planned", route.id))

    def route_status_changed(self, route, previous_status):
        self.events.append(("status", route.status, previous_status))


class BrokenNotifier(RouteNotifier):
    def route_planned(self, route):
        raise ConnectionError("smtp down")

    def route_status_changed(self, route, previous_status):
        raise ConnectionError("smtp down")


def test_plan_returns_the_route_id(service, admin_scope, church_location):
    route_id = service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A", "B"], church_location)
    assert service.get_route(admin_scope, route_id).pickup_request_ids == ("A", "B")


def test_concurrent_planning_claims_each_request_once(store, church_location):
    """
    Two planners race for request B: exactly one route wins, the other
    gets a ConflictError and writes nothing.
    """
    service = RouteOptimizationService(store)
    barrier = threading.Barrier(2)
    results = {}

    def worker(name, driver_id, ids):
        scope = establish_scope(CallerIdentity.new(f"admin-{name}", UserRole.ADMIN, ORG))
        barrier.wait()
        try:
            results[name] = service.plan_route(scope, driver_id, "sunday", SUNDAY, ids, church_location)
        except ConflictError as e:
            results[name] = e

    threads = [
        threading.Thread(target=worker, args=("first", "driver-1", ["A", "B"])),
        threading.Thread(target=worker, args=("second", "driver-2", ["B", "C"])),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [value for value in results.values() if isinstance(value, str)]
    losers = [value for value in results.values() if isinstance(value, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert "B" in losers[0].request_ids

    scope = establish_scope(CallerIdentity.new("admin-1", UserRole.ADMIN, ORG))
    assert store.get_pickup_request(scope, "B").route_id == winners[0]
    assert len(store.routes_between(scope, SUNDAY, SUNDAY)) == 1


def test_notifier_hears_about_changes(store, admin_scope, church_location):
    notifier = RecordingNotifier()
    service = RouteOptimizationService(store, notifier=notifier)

    route_id = service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A"], church_location)
    service.update_route_status(admin_scope, route_id, "IN_PROGRESS")

    assert notifier.events == [
        ("planned", route_id),
        ("status", RouteStatus.IN_PROGRESS, RouteStatus.PLANNED),
    ]


def test_notifier_failure_does_not_undo_the_change(store, admin_scope, church_location, caplog):
    service = RouteOptimizationService(store, notifier=BrokenNotifier())

    with caplog.at_level(logging.ERROR, logger="routes.service"):
        route_id = service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A"], church_location)
        route = service.update_route_status(admin_scope, route_id, RouteStatus.CANCELLED)

    assert route.status == RouteStatus.CANCELLED
    assert service.get_route(admin_scope, route_id).status == RouteStatus.CANCELLED
    assert len([r for r in caplog.records if "Notification" in r.getMessage()]) == 2


def test_driver_lists_own_routes_by_default(service, admin_scope, driver_scope, church_location):
    mine = service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A"], church_location)
    service.plan_route(admin_scope, "driver-2", "sunday", SUNDAY, ["B"], church_location)

    assert [route.id for route in service.list_routes(driver_scope)] == [mine]


def test_admin_must_name_a_driver(service, admin_scope):
    with pytest.raises(ValidationError):
        service.list_routes(admin_scope)


def test_list_routes_accepts_iso_dates(service, admin_scope, church_location):
    service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A"], church_location)
    assert len(service.list_routes(admin_scope, "driver-1", date_from="2026-10-18", date_to="2026-10-18")) == 1
    assert service.list_routes(admin_scope, "driver-1", date_from="2026-10-19") == []


def test_list_routes_of_foreign_driver(service, admin_scope):
    with pytest.raises(ScopeError):
        service.list_routes(admin_scope, "driver-9")


def test_other_organization_cannot_read_the_route(service, admin_scope, other_org_scope, church_location):
    route_id = service.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A"], church_location)
    with pytest.raises(NotFoundError):
        service.get_route(other_org_scope, route_id)


def test_analytics_defaults_to_last_30_days(service, admin_scope, church_location):
    today = utcnow().date()
    service.plan_route(admin_scope, "driver-1", "sunday", today - timedelta(days=3), ["A"], church_location)
    service.plan_route(admin_scope, "driver-1", "sunday", today - timedelta(days=45), ["B"], church_location)

    assert service.get_analytics(admin_scope).route_count == 1
    assert service.get_analytics(admin_scope, from_date=today - timedelta(days=60)).route_count == 2


def test_analytics_reversed_window(service, admin_scope):
    with pytest.raises(ValidationError):
        service.get_analytics(admin_scope, "2026-10-18", "2026-10-01")
