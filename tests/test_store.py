import logging
from dataclasses import dataclass, replace

import pytest

from pickups.models import PickupStatus
from routes.errors import NotFoundError, ValidationError
from routes.models import Route, Stop
from routes.store import InMemoryRouteStore
from routing.distance import Coordinates
from tenancy.errors import ScopeError

from conftest import ORG, OTHER_ORG, SUNDAY, make_request


def make_route(request_ids, organization_id=ORG, driver_id="driver-1", route_date=SUNDAY):
    return Route.new(
        organization_id=organization_id,
        driver_id=driver_id,
        service_day_id="sunday",
        route_date=route_date,
        stops=tuple(Stop(pickup_request_id=request_id, position=i, leg_distance_km=1.0, leg_minutes=4.0)
                    for i, request_id in enumerate(request_ids)),
        start_location=Coordinates(43.65, -79.38),
        total_distance_km=float(len(request_ids)),
    )


@dataclass
class FailingStore(InMemoryRouteStore):
    """
    Blows up on the second pickup write to simulate a crash mid-transaction.
    """
    writes: int = 0

    def _put_pickup(self, request):
        self.writes += 1
        if self.writes == 2:
            raise RuntimeError("disk full")
        super()._put_pickup(request)


def test_save_claims_every_request(store, admin_scope):
    route = store.save_route(admin_scope, make_route(["A", "B"]))

    for request_id in ("A", "B"):
        request = store.get_pickup_request(admin_scope, request_id)
        assert request.status == PickupStatus.ACCEPTED
        assert request.route_id == route.id
        assert request.driver_id == "driver-1"
        assert request.distance_km == 1.0
    assert store.get_route(admin_scope, route.id) == route


def test_failed_write_rolls_everything_back(admin_scope):
    store = FailingStore()
    store.add_pickup_request(make_request("A", 43.66, -79.39))
    store.add_pickup_request(make_request("B", 43.64, -79.37))
    route = make_route(["A", "B"])

    with pytest.raises(RuntimeError):
        store.save_route(admin_scope, route)

    with pytest.raises(NotFoundError):
        store.get_route(admin_scope, route.id)
    for request_id in ("A", "B"):
        request = store.get_pickup_request(admin_scope, request_id)
        assert request.status == PickupStatus.PENDING
        assert request.route_id is None


@pytest.mark.parametrize("stops", [
    (),
    (Stop("A", 1), Stop("B", 2)),
    (Stop("A", 0), Stop("A", 1)),
])
def test_structurally_broken_routes_are_rejected(store, admin_scope, stops):
    route = replace(make_route(["A"]), stops=stops)
    with pytest.raises(ValidationError):
        store.save_route(admin_scope, route)


def test_saving_a_route_for_another_organization_is_a_scope_error(store, admin_scope):
    with pytest.raises(ScopeError):
        store.save_route(admin_scope, make_route(["X"], organization_id=OTHER_ORG))


def test_cross_tenant_lookup_is_not_found_and_logged(store, admin_scope, other_org_scope, caplog):
    route = store.save_route(admin_scope, make_route(["A"]))

    with caplog.at_level(logging.WARNING, logger="tenancy.security"):
        with pytest.raises(NotFoundError):
            store.get_route(other_org_scope, route.id)
    assert any(record.name == "tenancy.security" for record in caplog.records)


def test_list_routes_newest_first_and_date_filtered(store, admin_scope):
    older = store.save_route(admin_scope, make_route(["A"], route_date=SUNDAY.replace(day=11)))
    newer = store.save_route(admin_scope, make_route(["B"]))
    store.save_route(admin_scope, make_route(["C"], driver_id="driver-2"))

    assert [r.id for r in store.list_routes(admin_scope, "driver-1")] == [newer.id, older.id]
    assert [r.id for r in store.list_routes(admin_scope, "driver-1", date_from=SUNDAY)] == [newer.id]
    assert [r.id for r in store.list_routes(admin_scope, "driver-1", date_to=SUNDAY.replace(day=12))] == [older.id]


def test_list_routes_unknown_driver_is_empty(store, admin_scope):
    assert store.list_routes(admin_scope, "nobody") == []


def test_list_routes_of_foreign_driver_is_a_scope_error(store, admin_scope):
    with pytest.raises(ScopeError):
        store.list_routes(admin_scope, "driver-9")


def test_closed_scope_is_refused(store, admin_scope):
    admin_scope.close()
    with pytest.raises(ScopeError):
        store.get_pickup_requests(admin_scope, ["A"])
