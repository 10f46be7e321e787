import pytest
from datetime import date

from pickups.models import Address, PickupRequest
from routes.service import RouteOptimizationService
from routes.store import InMemoryRouteStore
from tenancy.context import establish_scope
from tenancy.models import CallerIdentity, UserRole

ORG = "org-1"
OTHER_ORG = "org-2"
SUNDAY = date(2026, 10, 18)


def make_request(request_id, lat=None, lng=None, organization_id=ORG, priority=0, **kwargs):
    return PickupRequest(
        id=request_id,
        organization_id=organization_id,
        user_id=f"rider-{request_id}",
        address=Address(street=f"{request_id} Main St", city="Toronto", province="ON", latitude=lat, longitude=lng),
        service_day_id="sunday",
        priority=priority,
        **kwargs,
    )


@pytest.fixture
def church_location():
    # Example: a church in downtown Toronto
    return {"lat": 43.65, "lng": -79.38}


@pytest.fixture
def store():
    store = InMemoryRouteStore()
    for organization_id in (ORG, OTHER_ORG):
        store.add_service_day(organization_id, f"sunday-{organization_id}")
    store.add_service_day(ORG, "sunday")
    store.add_driver(ORG, "driver-1")
    store.add_driver(ORG, "driver-2")
    store.add_driver(OTHER_ORG, "driver-9")

    store.add_pickup_request(make_request("A", 43.66, -79.39))
    store.add_pickup_request(make_request("B", 43.64, -79.37))
    store.add_pickup_request(make_request("C", 43.70, -79.40))
    store.add_pickup_request(make_request("X", 43.66, -79.39, organization_id=OTHER_ORG))
    return store


@pytest.fixture
def service(store):
    return RouteOptimizationService(store)


@pytest.fixture
def admin_scope():
    return establish_scope(CallerIdentity.new("admin-1", UserRole.ADMIN, ORG))


@pytest.fixture
def driver_scope():
    return establish_scope(CallerIdentity.new("driver-1", UserRole.TRANSPORTATION_TEAM, ORG))


@pytest.fixture
def other_org_scope():
    return establish_scope(CallerIdentity.new("admin-9", UserRole.ADMIN, OTHER_ORG))
