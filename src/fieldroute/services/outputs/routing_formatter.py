"""Human-readable formatting and serializers for routing outputs."""

from __future__ import annotations

import csv
import io
import math
from dataclasses import asdict

from ..routing.models import OptimizedRoute

METERS_TO_MILES = 0.000621371


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(meters: float) -> str:
    miles = meters * METERS_TO_MILES
    return f"{miles:.1f} mi"


def format_duration(minutes: float) -> str:
    total = _round_half_up(minutes)
    if total < 60:
        return f"{total} mins"
    hours, mins = divmod(total, 60)
    return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"


def route_to_json(route: OptimizedRoute) -> dict:
    return {
        "quality": route.quality,
        "total_duration_minutes": route.total_duration_minutes,
        "total_distance_meters": route.total_distance_meters,
        "total_duration_text": route.total_duration_text,
        "total_distance_text": route.total_distance_text,
        "stops": [
            {"order": order, "id": stop.id, "address": stop.address}
            for order, stop in enumerate(route.stops, start=1)
        ],
        "segments": [asdict(segment) for segment in route.segments],
        "unresolved_legs": [asdict(leg) for leg in route.unresolved_legs],
    }


def route_to_csv(route: OptimizedRoute) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "order",
        "stop_id",
        "address",
        "drive_minutes",
        "drive_meters",
        "drive_text",
        "resolved",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    inbound = {segment.to_stop_id: segment for segment in route.segments}
    for order, stop in enumerate(route.stops, start=1):
        segment = inbound.get(stop.id)
        writer.writerow(
            {
                "order": order,
                "stop_id": stop.id,
                "address": stop.address,
                "drive_minutes": segment.duration_minutes if segment else "",
                "drive_meters": segment.distance_meters if segment else "",
                "drive_text": segment.duration_text if segment else "",
                "resolved": bool(segment),
            }
        )
    return buffer.getvalue()


def format_clock(minutes_from_midnight: float) -> str:
    total = _round_half_up(minutes_from_midnight)
    return f"{total // 60}:{total % 60:02d}"
