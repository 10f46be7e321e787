import pytest

from routes.errors import ConflictError, NotFoundError, ValidationError
from routes.planner.engine import RoutePlanner, unique_request_ids
from routes.planner.policy import PlannerPolicy, default_planner_policy
from routes.planner.scoring import leg_minutes, optimization_score
from routes.planner.sequencing import PlanningCandidate, nearest_neighbor, sequence_candidates
from routing.distance import Coordinates, distance_between

from conftest import ORG, SUNDAY, make_request


@pytest.fixture
def planner(store):
    return RoutePlanner(store)


def plan(planner, scope, ids, start, **kwargs):
    return planner.plan_route(
        scope,
        driver_id=kwargs.pop("driver_id", "driver-1"),
        service_day_id=kwargs.pop("service_day_id", "sunday"),
        route_date=kwargs.pop("route_date", SUNDAY),
        pickup_request_ids=ids,
        start_location=start,
        **kwargs,
    )


def test_nearest_neighbor_order_from_church(planner, admin_scope, church_location):
    """
    A is closest to the church, then B is closer to A than C is.
    """
    route = plan(planner, admin_scope, ["C", "B", "A"], church_location)

    assert route.pickup_request_ids == ("A", "B", "C")
    assert [stop.position for stop in route.stops] == [0, 1, 2]
    assert route.stops[0].leg_distance_km == pytest.approx(
        distance_between(Coordinates(43.65, -79.38), Coordinates(43.66, -79.39))
    )
    assert route.organization_id == ORG
    assert route.status.value == "PLANNED"


def test_totals_are_derived_from_the_legs(planner, admin_scope, church_location):
    route = plan(planner, admin_scope, ["A", "B", "C"], church_location)
    policy = default_planner_policy()

    legs = [stop.leg_distance_km for stop in route.stops]
    assert route.total_distance_km == pytest.approx(sum(legs))
    assert route.estimated_minutes == round(sum(leg / 30 * 60 + 2 for leg in legs))
    assert route.optimization_score == optimization_score(route.total_distance_km, 3, policy)
    for stop in route.stops:
        assert stop.leg_minutes == pytest.approx(leg_minutes(stop.leg_distance_km, policy))


def test_ungeocoded_request_goes_last_without_a_leg(store, planner, admin_scope, church_location):
    store.add_pickup_request(make_request("U"))

    route = plan(planner, admin_scope, ["U", "B", "A"], church_location)

    assert route.pickup_request_ids[-1] == "U"
    assert route.stops[-1].leg_distance_km is None
    assert route.stops[-1].leg_minutes is None
    known = [stop.leg_distance_km for stop in route.stops[:-1]]
    assert route.total_distance_km == pytest.approx(sum(known))


def test_route_with_only_ungeocoded_requests(store, planner, admin_scope, church_location):
    store.add_pickup_request(make_request("U1"))
    store.add_pickup_request(make_request("U2"))

    route = plan(planner, admin_scope, ["U2", "U1"], church_location)

    assert route.pickup_request_ids == ("U2", "U1")
    assert route.total_distance_km is None
    assert route.estimated_minutes is None
    assert route.optimization_score is None


def test_geocoder_locates_missing_coordinates(store, admin_scope, church_location):
    store.add_pickup_request(make_request("U"))
    calls = []

    def geocoder(address):
        calls.append(address.street)
        return Coordinates(43.651, -79.381)

    route = plan(RoutePlanner(store, geocoder=geocoder), admin_scope, ["A", "U"], church_location)

    assert calls == ["U Main St"]
    assert route.pickup_request_ids[0] == "U"
    assert route.stops[0].leg_distance_km is not None


def test_geocoder_miss_keeps_request_last(store, admin_scope, church_location):
    store.add_pickup_request(make_request("U"))
    route = plan(RoutePlanner(store, geocoder=lambda address: None), admin_scope, ["U", "A"], church_location)
    assert route.pickup_request_ids == ("A", "U")


def test_priority_requests_are_visited_first(store, planner, admin_scope, church_location):
    store.add_pickup_request(make_request("P", 43.70, -79.41, priority=1))

    route = plan(planner, admin_scope, ["A", "B", "P"], church_location)

    assert route.pickup_request_ids[0] == "P"


def test_priority_ignored_when_policy_says_so(store, admin_scope, church_location):
    store.add_pickup_request(make_request("P", 43.70, -79.41, priority=1))
    planner = RoutePlanner(store, policy=PlannerPolicy(honor_priority=False))

    route = plan(planner, admin_scope, ["A", "B", "P"], church_location)

    assert route.pickup_request_ids[0] == "A"


def test_ties_break_on_ascending_request_id():
    start = Coordinates(43.65, -79.38)
    same_place = Coordinates(43.66, -79.39)
    candidates = [PlanningCandidate("b", same_place), PlanningCandidate("a", same_place)]

    legs, end = nearest_neighbor(start, candidates)

    assert [leg.request_id for leg in legs] == ["a", "b"]
    assert legs[1].distance_km == 0.0
    assert end == same_place


def test_numeric_ids_tie_break_by_value():
    """
    Riders of one household share an address; database ids are numeric strings.
    """
    same_place = Coordinates(43.66, -79.39)
    candidates = [PlanningCandidate("10", same_place), PlanningCandidate("9", same_place), PlanningCandidate("b", same_place)]

    legs, _ = nearest_neighbor(Coordinates(43.65, -79.38), candidates)

    assert [leg.request_id for leg in legs] == ["9", "10", "b"]


def test_sequence_candidates_appends_unlocated_in_input_order():
    start = Coordinates(43.65, -79.38)
    candidates = [
        PlanningCandidate("u2", None),
        PlanningCandidate("a", Coordinates(43.66, -79.39)),
        PlanningCandidate("u1", None),
    ]
    legs = sequence_candidates(start, candidates)
    assert [leg.request_id for leg in legs] == ["a", "u2", "u1"]


def test_duplicate_ids_collapse(planner, admin_scope, church_location):
    route = plan(planner, admin_scope, ["A", "B", "A"], church_location)
    assert route.stop_count == 2


@pytest.mark.parametrize("ids", [[], "A", None, ["A", ""]])
def test_bad_request_ids_are_rejected(ids):
    with pytest.raises(ValidationError):
        unique_request_ids(ids)


@pytest.mark.parametrize("start", [
    {"lat": 200, "lng": 0},
    {"lat": 43.65},
    (float("nan"), -79.38),
    "43.65,-79.38",
])
def test_bad_start_location_is_rejected(planner, admin_scope, start):
    with pytest.raises(ValidationError):
        plan(planner, admin_scope, ["A"], start)


def test_bad_route_date_is_rejected(planner, admin_scope, church_location):
    with pytest.raises(ValidationError):
        plan(planner, admin_scope, ["A"], church_location, route_date="next sunday")


def test_too_many_requests(store, admin_scope, church_location):
    planner = RoutePlanner(store, policy=PlannerPolicy(max_stops=2))
    with pytest.raises(ValidationError):
        plan(planner, admin_scope, ["A", "B", "C"], church_location)


@pytest.mark.parametrize("overrides", [
    {"driver_id": "ghost"},
    {"driver_id": "driver-9"},
    {"service_day_id": "sunday-org-2"},
])
def test_unknown_or_foreign_collaborators_are_not_found(planner, admin_scope, church_location, overrides):
    with pytest.raises(NotFoundError):
        plan(planner, admin_scope, ["A"], church_location, **overrides)


def test_foreign_pickup_request_is_not_found(store, planner, admin_scope, church_location):
    with pytest.raises(NotFoundError):
        plan(planner, admin_scope, ["A", "X"], church_location)
    assert store.get_pickup_request(admin_scope, "A").route_id is None


def test_already_assigned_request_conflicts(store, planner, admin_scope, church_location):
    plan(planner, admin_scope, ["A"], church_location)

    with pytest.raises(ConflictError) as excinfo:
        plan(planner, admin_scope, ["B", "A"], church_location, driver_id="driver-2")

    assert excinfo.value.request_ids == ["A"]
    assert store.get_pickup_request(admin_scope, "B").route_id is None


def test_policy_validation():
    with pytest.raises(ValueError):
        PlannerPolicy(average_speed_kmh=0).validate()
