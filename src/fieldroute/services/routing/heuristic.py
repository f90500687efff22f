"""Address-similarity fallback used when no live drive-time data is available.

The score only compares address text: the leading house numbers and the
normalized characters. It says nothing about real roads, so every result is
tagged as a heuristic and routes built from it are reported as estimates.
"""

from __future__ import annotations

import re

from ..outputs.routing_formatter import format_distance
from .models import HEURISTIC, DriveTime
from .providers import DistanceProvider, DriveTimeCache

NUMBER_WEIGHT = 10
# Scale applied so the score can stand in for a distance in meters.
METERS_PER_POINT = 100.0

_NUMBER_PATTERN = re.compile(r"\d+")
_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]")


def normalize_address(address: str) -> str:
    return _NON_ALNUM_PATTERN.sub("", address.lower())


def leading_number(address: str) -> int | None:
    match = _NUMBER_PATTERN.search(address)
    return int(match.group()) if match else None


def character_difference(first: str, second: str) -> int:
    diff = abs(len(first) - len(second))
    for a, b in zip(first, second):
        if a != b:
            diff += 1
    return diff


def address_similarity_score(origin: str, destination: str) -> int:
    """Lower means the two addresses look closer together."""
    number_diff = 0
    first, second = leading_number(origin), leading_number(destination)
    if first is not None and second is not None:
        number_diff = abs(first - second)
    return number_diff * NUMBER_WEIGHT + character_difference(
        normalize_address(origin), normalize_address(destination)
    )


class AddressSimilarityProvider(DistanceProvider):
    """Estimates travel cost from address text alone. Never fails."""

    provenance = HEURISTIC

    def __init__(self, cache: DriveTimeCache | None = None, batch_size: int | None = None) -> None:
        # Pure computation, so there is nothing to gain from worker threads.
        super().__init__(cache=cache, batch_size=batch_size, max_parallel_requests=1)

    def _lookup(self, origin: str, destination: str) -> DriveTime:
        score = float(address_similarity_score(origin, destination))
        distance_meters = score * METERS_PER_POINT
        return DriveTime(
            duration_minutes=score,
            distance_meters=distance_meters,
            duration_text=f"~{int(score)} mins",
            distance_text=f"~{format_distance(distance_meters)}",
            provenance=HEURISTIC,
        )
