#!/usr/bin/env python3
"""Check which distance provider a deployment will use and whether it answers."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from fieldroute.config import settings
from fieldroute.services.routing.heuristic import HeuristicEstimator
from fieldroute.services.routing.maps_client import DistanceMatrixClient, check_health

SAMPLE_STOPS = [
    "233 S Wacker Dr, Chicago, IL",
    "1800 Sherman Ave, Evanston, IL",
    "1060 Lake St, Oak Park, IL",
]


def main():
    print("=" * 60)
    print("Distance Provider Check")
    print("=" * 60)
    print()

    print("1. Heuristic estimator (always available)...")
    estimator = HeuristicEstimator(settings.territory_type)
    for origin, destination in zip(SAMPLE_STOPS, SAMPLE_STOPS[1:]):
        leg = estimator.estimate(origin, destination)
        print(f"   [OK] {origin} -> {destination}: {leg.distance_miles:.1f} mi, {leg.duration_minutes:.0f} min")
    print()

    print("2. Checking distance matrix configuration...")
    if not settings.maps_api_key:
        print("   [INFO] FIELDROUTE_MAPS_API_KEY is not set; routes will use the heuristic estimator")
        return 0
    print(f"   [OK] Endpoint: {settings.maps_base_url}")
    print()

    print("3. Testing distance matrix health check...")
    if not check_health():
        print("   [ERROR] Distance matrix service is not responding")
        return 1
    print("   [OK] Distance matrix service is healthy")
    print()

    print("4. Testing a tiled matrix request...")
    matrix = DistanceMatrixClient().estimate_matrix(SAMPLE_STOPS, SAMPLE_STOPS)
    rows, cols = matrix.shape
    print(f"   [OK] Received {rows}x{cols} matrix, {int(matrix.degraded.sum())} cells on the default leg")
    print(f"   [OK] Sample distance: {matrix.distances[0, 1]:.1f} mi")
    print()

    print("=" * 60)
    print("[SUCCESS] Distance matrix service is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
