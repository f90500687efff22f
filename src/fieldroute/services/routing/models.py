"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import JobOrderUpdate

LIVE = "live"
HEURISTIC = "heuristic"

QUALITY_OPTIMIZED = "optimized"
QUALITY_ESTIMATED = "estimated"
QUALITY_DEGRADED = "degraded"


@dataclass(frozen=True, slots=True)
class Stop:
    id: str
    address: str


@dataclass(frozen=True, slots=True)
class DriveTime:
    """Resolved travel cost for one directed address pair."""

    duration_minutes: float
    distance_meters: float
    duration_text: str
    distance_text: str
    provenance: str = LIVE


@dataclass(slots=True)
class RouteSegment:
    from_address: str
    to_address: str
    from_stop_id: Optional[str]
    to_stop_id: str
    duration_minutes: float
    distance_meters: float
    duration_text: str
    distance_text: str


@dataclass(slots=True)
class UnresolvedLeg:
    from_address: str
    to_address: str
    from_stop_id: Optional[str]
    to_stop_id: str


@dataclass(slots=True)
class OptimizedRoute:
    stops: List[Stop]
    segments: List[RouteSegment]
    total_duration_minutes: float
    total_distance_meters: float
    total_duration_text: str
    total_distance_text: str
    quality: str = QUALITY_OPTIMIZED
    unresolved_legs: List[UnresolvedLeg] = field(default_factory=list)

    @property
    def is_estimate(self) -> bool:
        return self.quality != QUALITY_OPTIMIZED


class CostMatrix:
    """Directed travel costs among the start (index 0) and the stops (1..n)."""

    def __init__(self, size: int) -> None:
        self.size = size
        self._entries: dict[tuple[int, int], DriveTime] = {}

    def set(self, from_index: int, to_index: int, value: DriveTime | None) -> None:
        if value is not None:
            self._entries[(from_index, to_index)] = value

    def get(self, from_index: int, to_index: int) -> DriveTime | None:
        return self._entries.get((from_index, to_index))

    def missing_count(self) -> int:
        return self.size * (self.size - 1) - len(self._entries)


@dataclass(slots=True)
class DaySchedule:
    """Outcome of ordering one day's jobs."""

    date: str
    status: str
    route: Optional[OptimizedRoute] = None
    updates: List[JobOrderUpdate] = field(default_factory=list)
    skipped_job_ids: List[str] = field(default_factory=list)
    message: Optional[str] = None
    output_dir: Optional[str] = None
