"""Daily route ordering: greedy construction with time/distance tie-break, then 2-opt.

Matrix index 0 is the start address; stop ``k`` of the input lives at index
``k + 1``. Tours are lists of matrix indices and never include the start.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from ..outputs.routing_formatter import format_distance, format_duration
from .matrix import build_cost_matrix
from .models import (
    HEURISTIC,
    QUALITY_DEGRADED,
    QUALITY_ESTIMATED,
    QUALITY_OPTIMIZED,
    CostMatrix,
    DriveTime,
    OptimizedRoute,
    RouteSegment,
    Stop,
    UnresolvedLeg,
)
from .providers import DistanceProvider

logger = logging.getLogger(__name__)

TWO_OPT_MIN_STOPS = 4
EPSILON = 1e-9


class RouteConstructionError(ValueError):
    """Raised when no usable route can be built from the available drive times."""


def prefers(
    candidate: DriveTime,
    incumbent: DriveTime,
    time_threshold_percent: float,
    distance_threshold_percent: float,
) -> bool:
    """Return True if ``candidate`` should replace ``incumbent`` as the next stop.

    Shorter duration wins, except when the two durations are within
    ``time_threshold_percent`` of the better one. Then a distance that is at
    least ``distance_threshold_percent`` shorter decides. Ties keep the
    incumbent.
    """
    candidate_time = candidate.duration_minutes
    incumbent_time = incumbent.duration_minutes
    better_time = min(candidate_time, incumbent_time)
    if abs(candidate_time - incumbent_time) < better_time * time_threshold_percent / 100.0:
        candidate_distance = candidate.distance_meters
        incumbent_distance = incumbent.distance_meters
        keep_fraction = 1.0 - distance_threshold_percent / 100.0
        if candidate_distance < incumbent_distance and candidate_distance <= incumbent_distance * keep_fraction:
            return True
        if incumbent_distance < candidate_distance and incumbent_distance <= candidate_distance * keep_fraction:
            return False
    return candidate_time < incumbent_time


def greedy_order(
    matrix: CostMatrix,
    time_threshold_percent: float,
    distance_threshold_percent: float,
) -> list[int]:
    """Nearest-neighbour tour from the start using :func:`prefers` to pick each hop."""
    unvisited = list(range(1, matrix.size))
    tour: list[int] = []
    current = 0

    while unvisited:
        best_node: int | None = None
        best_cost: DriveTime | None = None
        for node in unvisited:
            cost = matrix.get(current, node)
            if cost is None:
                continue
            if best_cost is None or prefers(cost, best_cost, time_threshold_percent, distance_threshold_percent):
                best_node, best_cost = node, cost

        if best_node is None:
            # Nothing reachable from here; keep input order so the tour still completes.
            best_node = unvisited[0]
            logger.warning(f"No resolved drive time from node {current}; visiting node {best_node} next")

        tour.append(best_node)
        unvisited.remove(best_node)
        current = best_node

    return tour


def path_cost(matrix: CostMatrix, nodes: Sequence[int]) -> tuple[int, float]:
    """(unresolved hop count, total minutes) along consecutive ``nodes``."""
    missing = 0
    minutes = 0.0
    for from_node, to_node in zip(nodes, nodes[1:]):
        entry = matrix.get(from_node, to_node)
        if entry is None:
            missing += 1
        else:
            minutes += entry.duration_minutes
    return missing, minutes


def tour_cost(matrix: CostMatrix, tour: Sequence[int]) -> tuple[int, float]:
    return path_cost(matrix, [0, *tour])


def _improves(new: tuple[int, float], old: tuple[int, float]) -> bool:
    if new[0] != old[0]:
        return new[0] < old[0]
    return new[1] < old[1] - EPSILON


def two_opt(matrix: CostMatrix, tour: Sequence[int]) -> list[int]:
    """Reverse sub-paths while that strictly lowers the tour cost.

    Only the hops touching the reversed window change, so each candidate is
    scored on that window alone. Reversal flips the direction of the inner
    hops, which matters because costs are asymmetric.
    """
    path = [0, *tour]
    size = len(path)
    passes = 0
    improved = True

    while improved:
        improved = False
        passes += 1
        for i in range(size - 2):
            for j in range(i + 2, size):
                old_window = path[i : j + 2]
                new_window = [path[i], *path[j:i:-1], *path[j + 1 : j + 2]]
                if _improves(path_cost(matrix, new_window), path_cost(matrix, old_window)):
                    path[i + 1 : j + 1] = path[j:i:-1]
                    improved = True

    logger.debug(f"2-opt converged after {passes} passes")
    return path[1:]


def _empty_route(provenance: str) -> OptimizedRoute:
    return OptimizedRoute(
        stops=[],
        segments=[],
        total_duration_minutes=0.0,
        total_distance_meters=0.0,
        total_duration_text="0 mins",
        total_distance_text="0 mi",
        quality=QUALITY_ESTIMATED if provenance == HEURISTIC else QUALITY_OPTIMIZED,
    )


def assemble_route(
    start_address: str,
    stops: Sequence[Stop],
    matrix: CostMatrix,
    tour: Sequence[int],
) -> OptimizedRoute:
    """Walk the tour and emit one segment per resolved hop."""
    ordered = [stops[node - 1] for node in tour]
    segments: list[RouteSegment] = []
    unresolved: list[UnresolvedLeg] = []
    heuristic_used = False

    previous_node = 0
    previous_address = start_address
    previous_id: str | None = None
    for node, stop in zip(tour, ordered):
        entry = matrix.get(previous_node, node)
        if entry is None:
            unresolved.append(
                UnresolvedLeg(
                    from_address=previous_address,
                    to_address=stop.address,
                    from_stop_id=previous_id,
                    to_stop_id=stop.id,
                )
            )
        else:
            heuristic_used = heuristic_used or entry.provenance == HEURISTIC
            segments.append(
                RouteSegment(
                    from_address=previous_address,
                    to_address=stop.address,
                    from_stop_id=previous_id,
                    to_stop_id=stop.id,
                    duration_minutes=entry.duration_minutes,
                    distance_meters=entry.distance_meters,
                    duration_text=entry.duration_text,
                    distance_text=entry.distance_text,
                )
            )
        previous_node, previous_address, previous_id = node, stop.address, stop.id

    total_minutes = sum(segment.duration_minutes for segment in segments)
    total_meters = sum(segment.distance_meters for segment in segments)
    if unresolved:
        quality = QUALITY_DEGRADED
    elif heuristic_used:
        quality = QUALITY_ESTIMATED
    else:
        quality = QUALITY_OPTIMIZED

    return OptimizedRoute(
        stops=ordered,
        segments=segments,
        total_duration_minutes=total_minutes,
        total_distance_meters=total_meters,
        total_duration_text=format_duration(total_minutes),
        total_distance_text=format_distance(total_meters),
        quality=quality,
        unresolved_legs=unresolved,
    )


def _validate(start_address: str, stops: Sequence[Stop]) -> None:
    if not start_address or not start_address.strip():
        raise ValueError("A starting address is required.")
    seen: set[str] = set()
    for stop in stops:
        if not stop.address or not stop.address.strip():
            raise ValueError(f"Stop '{stop.id}' has no address.")
        if stop.id in seen:
            raise ValueError(f"Duplicate stop id '{stop.id}'.")
        seen.add(stop.id)


class RouteOptimizer:
    def __init__(
        self,
        provider: DistanceProvider,
        time_threshold_percent: float | None = None,
        distance_threshold_percent: float | None = None,
    ) -> None:
        self.provider = provider
        self.time_threshold_percent = (
            time_threshold_percent if time_threshold_percent is not None else settings.route_time_threshold_percent
        )
        self.distance_threshold_percent = (
            distance_threshold_percent
            if distance_threshold_percent is not None
            else settings.route_distance_threshold_percent
        )

    def optimize(self, start_address: str, stops: Sequence[Stop]) -> OptimizedRoute:
        stops = list(stops)
        _validate(start_address, stops)

        if not stops:
            return _empty_route(self.provider.provenance)

        if len(stops) == 1:
            stop = stops[0]
            entry = self.provider.resolve(start_address, stop.address)
            if entry is None:
                raise RouteConstructionError(
                    f"Cannot construct route: no drive time from '{start_address}' to '{stop.address}'."
                )
            matrix = CostMatrix(2)
            matrix.set(0, 1, entry)
            return assemble_route(start_address, stops, matrix, [1])

        addresses = [start_address, *(stop.address for stop in stops)]
        matrix = build_cost_matrix(addresses, self.provider)
        if all(matrix.get(0, node) is None for node in range(1, matrix.size)):
            raise RouteConstructionError(
                f"Cannot construct route: '{start_address}' could not be priced against any of {len(stops)} stops."
            )

        tour = greedy_order(matrix, self.time_threshold_percent, self.distance_threshold_percent)
        greedy_cost = tour_cost(matrix, tour)
        if len(stops) >= TWO_OPT_MIN_STOPS:
            tour = two_opt(matrix, tour)

        route = assemble_route(start_address, stops, matrix, tour)
        logger.info(
            f"Ordered {len(stops)} stops from '{start_address}': {route.total_duration_text}, "
            f"{route.total_distance_text} (greedy {greedy_cost[1]:.1f} min, quality={route.quality})"
        )
        return route


def optimize_route(
    start_address: str,
    stops: Sequence[Stop],
    provider: DistanceProvider,
    time_threshold_percent: float | None = None,
    distance_threshold_percent: float | None = None,
) -> OptimizedRoute:
    optimizer = RouteOptimizer(
        provider,
        time_threshold_percent=time_threshold_percent,
        distance_threshold_percent=distance_threshold_percent,
    )
    return optimizer.optimize(start_address, stops)
