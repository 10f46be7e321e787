from datetime import timedelta

import pytest

from routes.analytics import RouteAnalyticsAggregator, RouteAnalyticsSnapshot
from routes.errors import ValidationError
from routes.lifecycle import RouteLifecycleManager
from routes.models import RouteStatus
from routes.planner.engine import RoutePlanner

from conftest import SUNDAY, make_request


@pytest.fixture
def analytics(store):
    return RouteAnalyticsAggregator(store)


def test_empty_window_is_a_zero_snapshot(analytics, admin_scope):
    snapshot = analytics.get_analytics(admin_scope, SUNDAY, SUNDAY)
    assert snapshot == RouteAnalyticsSnapshot()
    assert snapshot.route_count == 0
    assert snapshot.completion_rate == 0.0
    assert snapshot.average_distance_applicable is False


def test_counts_and_averages(store, analytics, admin_scope, other_org_scope, church_location):
    planner = RoutePlanner(store)
    lifecycle = RouteLifecycleManager(store)

    first = planner.plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["A", "B"], church_location)
    second = planner.plan_route(admin_scope, "driver-2", "sunday", SUNDAY, ["C"], church_location)
    lifecycle.update_status(admin_scope, first.id, RouteStatus.IN_PROGRESS)
    lifecycle.update_status(admin_scope, first.id, RouteStatus.COMPLETED)

    # another organization: ignored
    planner.plan_route(other_org_scope, "driver-9", "sunday-org-2", SUNDAY, ["X"], church_location)

    snapshot = analytics.get_analytics(admin_scope, SUNDAY - timedelta(days=7), SUNDAY)

    assert snapshot.route_count == 2
    assert snapshot.completed_count == 1
    assert snapshot.planned_count == 1
    assert snapshot.completion_rate == pytest.approx(0.5)
    assert snapshot.total_pickups == 3
    assert snapshot.average_pickups_per_route == pytest.approx(1.5)
    assert snapshot.total_distance_km == pytest.approx(first.total_distance_km + second.total_distance_km)
    assert snapshot.average_distance_km == pytest.approx(snapshot.total_distance_km / 2)
    assert snapshot.average_distance_applicable is True
    assert snapshot.average_optimization_score == pytest.approx(
        (first.optimization_score + second.optimization_score) / 2
    )


def test_average_distance_not_applicable_without_known_distances(store, analytics, admin_scope, church_location):
    store.add_pickup_request(make_request("U"))
    RoutePlanner(store).plan_route(admin_scope, "driver-1", "sunday", SUNDAY, ["U"], church_location)

    snapshot = analytics.get_analytics(admin_scope, SUNDAY, SUNDAY)

    assert snapshot.route_count == 1
    assert snapshot.average_distance_km == 0.0
    assert snapshot.average_distance_applicable is False


def test_reversed_window_is_rejected(analytics, admin_scope):
    with pytest.raises(ValidationError):
        analytics.get_analytics(admin_scope, SUNDAY, SUNDAY - timedelta(days=1))


def test_snapshot_to_dict():
    assert RouteAnalyticsSnapshot(route_count=2).to_dict()["route_count"] == 2
