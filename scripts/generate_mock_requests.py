import pandas as pd
import numpy as np
from datetime import date, timedelta


def generate_mock_requests(num_requests=60, num_unlocated=4, organization_id="1", output_file="pickup_requests_generated.csv"):
    """
    Generates a realistic set of Sunday pickup requests for one church.
    Riders live within ~8km of the church; a few addresses are left without
    coordinates so the planner's "visit last" path gets exercised too.
    """
    # Center around downtown Toronto
    CENTER_LAT = 43.6532
    CENTER_LON = -79.3832

    streets = ["King St W", "Queen St E", "Dundas St W", "College St", "Bloor St W", "Gerrard St E"]
    service_day = date.today() + timedelta(days=(6 - date.today().weekday()) % 7)

    data = []
    for request_index in range(num_requests):
        located = request_index >= num_unlocated

        # Riders placed within ~8km of the church (roughly 0.07 degrees)
        lat = CENTER_LAT + np.random.uniform(-0.07, 0.07) if located else None
        lon = CENTER_LON + np.random.uniform(-0.07, 0.07) if located else None

        data.append({
            "request_id": f"pr_{str(request_index+1).zfill(4)}",
            "organization_id": organization_id,
            "user_id": f"u_{np.random.randint(1000, 9999)}",
            "street": f"{np.random.randint(1, 999)} {np.random.choice(streets)}",
            "city": "Toronto",
            "province": "ON",
            "postal_code": f"M{np.random.randint(1, 9)}{np.random.choice(list('ABCEGHJK'))} {np.random.randint(1, 9)}A{np.random.randint(1, 9)}",
            "lat": np.round(lat, 6) if located else None,
            "lon": np.round(lon, 6) if located else None,
            "service_day": service_day.isoformat(),
            "priority": np.random.choice([0, 1], p=[0.85, 0.15]),
            "notes": np.random.choice(["", "", "", "Wheelchair", "Two passengers"]),
        })

    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_requests} pickup requests and saved to '{output_file}'")

    print("\nRequests per priority:")
    for priority, count in df["priority"].value_counts().sort_index().items():
        print(f"  priority {priority}: {count}")
    print(f"  without coordinates: {int(df['lat'].isna().sum())}")

    return df


if __name__ == "__main__":
    generate_mock_requests()
