import logging
import os
import sys
from datetime import date

import numpy as np
import pandas as pd

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pickups.models import Address, PickupRequest
from routes.errors import ConflictError
from routes.models import RouteStatus
from routes.notifications import LoggingRouteNotifier
from routes.service import RouteOptimizationService
from routes.store import InMemoryRouteStore
from tenancy.context import tenant_scope
from tenancy.models import CallerIdentity, UserRole

CHURCH = {"lat": 43.6532, "lng": -79.3832}


def load_requests(filepath="pickup_requests_generated.csv"):
    if not os.path.exists(filepath):
        from generate_mock_requests import generate_mock_requests
        return generate_mock_requests(output_file=filepath)
    return pd.read_csv(filepath, dtype={"organization_id": str, "notes": str})


def seed_store(df, drivers):
    store = InMemoryRouteStore()
    organization_id = str(df["organization_id"].iloc[0])

    for driver_id in drivers:
        store.add_driver(organization_id, driver_id)
    store.add_service_day(organization_id, "sunday")

    for _, row in df.iterrows():
        store.add_pickup_request(
            PickupRequest(
                id=str(row["request_id"]),
                organization_id=organization_id,
                user_id=str(row["user_id"]),
                address=Address(
                    street=row["street"],
                    city=row["city"],
                    province=row["province"],
                    postal_code=row["postal_code"],
                    latitude=None if pd.isna(row["lat"]) else float(row["lat"]),
                    longitude=None if pd.isna(row["lon"]) else float(row["lon"]),
                ),
                service_day_id="sunday",
                priority=int(row["priority"]),
                notes="" if pd.isna(row["notes"]) else row["notes"],
            )
        )
    return store, organization_id


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    df = load_requests()
    drivers = ["driver_1", "driver_2", "driver_3"]
    store, organization_id = seed_store(df, drivers)
    service = RouteOptimizationService(store, notifier=LoggingRouteNotifier())

    admin = CallerIdentity.new("admin_1", UserRole.ADMIN, organization_id)
    request_ids = list(df["request_id"].astype(str))
    chunks = np.array_split(np.array(request_ids), len(drivers))

    with tenant_scope(admin) as scope:
        route_ids = []
        for driver_id, chunk in zip(drivers, chunks):
            route_ids.append(
                service.plan_route(
                    scope,
                    driver_id=driver_id,
                    service_day_id="sunday",
                    route_date=date.today(),
                    pickup_request_ids=list(chunk),
                    start_location=CHURCH,
                )
            )

        # planning the same requests twice must be refused
        try:
            service.plan_route(scope, drivers[0], "sunday", date.today(), request_ids[:2], CHURCH)
        except ConflictError as e:
            print(f"\nSecond planning refused as expected: {e}")

        print(f"\n--- Planned Routes ---")
        for route_id in route_ids:
            route = service.get_route(scope, route_id)
            print(f"Route {route.id} ({route.driver_id}):")
            print(f"  Stops: {route.stop_count}")
            print(f"  Distance: {route.total_distance_km or 0:.2f} km")
            print(f"  Estimated time: {route.estimated_minutes} min")
            print(f"  Score: {route.optimization_score}")
            print(f"  Order: {', '.join(route.pickup_request_ids[:8])}{' ...' if route.stop_count > 8 else ''}")

        service.update_route_status(scope, route_ids[0], RouteStatus.IN_PROGRESS)
        service.update_route_status(scope, route_ids[0], RouteStatus.COMPLETED)
        service.update_route_status(scope, route_ids[1], RouteStatus.CANCELLED)

        analytics = service.get_analytics(scope)
        print(f"\n--- Analytics (last 30 days) ---")
        for key, value in analytics.to_dict().items():
            print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
