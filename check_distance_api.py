#!/usr/bin/env python3
"""Manual check that the Google Distance Matrix API key works."""

import sys

from fieldroute.config import settings
from fieldroute.services.routing.google_client import check_health
from fieldroute.services.routing.providers import DriveTimeCache, GoogleDistanceProvider


def main():
    print("=" * 60)
    print("Distance Matrix Connection Check")
    print("=" * 60)
    print()

    print("1. Checking configuration...")
    if not settings.google_maps_api_key:
        print("   [ERROR] Google Maps API key is not configured")
        print("   Set FIELDROUTE_GOOGLE_MAPS_API_KEY in your .env file")
        return 1
    print(f"   [OK] Base URL: {settings.distance_matrix_base_url}")
    print(f"   [OK] Distance mode: {settings.distance_mode}")
    print()

    print("2. Testing health check...")
    if not check_health():
        print("   [ERROR] Distance Matrix API is not responding")
        return 1
    print("   [OK] Distance Matrix API answered")
    print()

    print("3. Resolving a sample pair...")
    origin = sys.argv[1] if len(sys.argv) > 1 else "1600 Amphitheatre Parkway, Mountain View, CA"
    destination = sys.argv[2] if len(sys.argv) > 2 else "1 Infinite Loop, Cupertino, CA"
    provider = GoogleDistanceProvider(cache=DriveTimeCache())
    result = provider.resolve(origin, destination)
    if result is None:
        print("   [ERROR] Pair could not be resolved")
        return 1
    print(f"   [OK] {origin} -> {destination}: {result.duration_text}, {result.distance_text}")
    print()

    print("=" * 60)
    print("[SUCCESS] Distance Matrix API is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
