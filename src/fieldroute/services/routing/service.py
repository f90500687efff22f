"""Day scheduling: order a day's jobs and hand the result to persistence."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, timedelta
from typing import Sequence

from ...config import Settings, settings as default_settings
from ...models.domain import STATUS_SCHEDULED, Customer, Job, JobOrderUpdate
from ...persistence.filesystem import FileStorage
from ...persistence.repository import JobRepository, get_job_repository
from ..outputs.routing_formatter import format_clock, route_to_csv, route_to_json
from .dispatcher import get_distance_provider
from .models import DaySchedule, OptimizedRoute, Stop
from .optimizer import RouteConstructionError, RouteOptimizer
from .providers import DistanceProvider

logger = logging.getLogger(__name__)

STATUS_OPTIMIZED = "optimized"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


def assign_route_order(route: OptimizedRoute) -> list[tuple[str, int]]:
    """Pair each stop id with its 1-indexed position in the route."""
    return [(stop.id, order) for order, stop in enumerate(route.stops, start=1)]


def _split_jobs(jobs: Sequence[Job], customers: dict[str, Customer]) -> tuple[list[Stop], list[Job], list[str]]:
    """Scheduled jobs with an address become stops; everything else rides along."""
    stops: list[Stop] = []
    others: list[Job] = []
    missing_address: list[str] = []
    for job in jobs:
        if job.status != STATUS_SCHEDULED:
            others.append(job)
            continue
        customer = customers.get(job.customer_id)
        if customer is None or not customer.address:
            logger.warning(f"Job {job.id} has no customer address; leaving it out of the route")
            missing_address.append(job.id)
            others.append(job)
            continue
        stops.append(Stop(id=job.id, address=customer.address))
    return stops, others, missing_address


def build_order_updates(
    route: OptimizedRoute,
    others: Sequence[Job],
    *,
    day_start_hour: int,
    job_duration_minutes: int,
    default_drive_minutes: float,
) -> list[JobOrderUpdate]:
    """Order and estimated start time for routed jobs, then positions for the rest."""
    inbound = {segment.to_stop_id: segment for segment in route.segments}
    updates: list[JobOrderUpdate] = []
    clock = day_start_hour * 60.0

    for index, (job_id, order) in enumerate(assign_route_order(route)):
        updates.append(JobOrderUpdate(job_id=job_id, order=order, scheduled_time=format_clock(clock)))
        clock += job_duration_minutes
        if index + 1 < len(route.stops):
            segment = inbound.get(route.stops[index + 1].id)
            clock += segment.duration_minutes if segment else default_drive_minutes

    routed = len(route.stops)
    for index, job in enumerate(others):
        order = job.order if job.order and job.order > routed else routed + index + 1
        updates.append(JobOrderUpdate(job_id=job.id, order=order, scheduled_time=job.scheduled_time))
    return updates


def _write_run_outputs(storage: FileStorage, schedule: DaySchedule) -> str:
    run_dir = storage.make_run_directory(prefix=f"route_{schedule.date}")
    summary = {
        "date": schedule.date,
        "status": schedule.status,
        "route": route_to_json(schedule.route) if schedule.route else None,
        "updates": [asdict(update) for update in schedule.updates],
        "skipped_job_ids": schedule.skipped_job_ids,
    }
    storage.write_json(run_dir / "summary.json", summary)
    if schedule.route:
        storage.write_csv(run_dir / "route.csv", route_to_csv(schedule.route))
    return str(run_dir)


def _order_jobs(
    day: str,
    start_address: str,
    jobs: Sequence[Job],
    repository: JobRepository,
    optimizer: RouteOptimizer,
    config: Settings,
) -> DaySchedule:
    customers = repository.get_customers({job.customer_id for job in jobs})
    stops, others, missing_address = _split_jobs(jobs, customers)
    route = optimizer.optimize(start_address, stops)
    updates = build_order_updates(
        route,
        others,
        day_start_hour=config.day_start_hour,
        job_duration_minutes=config.job_duration_minutes,
        default_drive_minutes=config.default_drive_minutes,
    )
    message = None
    if route.is_estimate:
        message = f"Route quality is '{route.quality}'; drive times are estimates."
    return DaySchedule(
        date=day,
        status=STATUS_OPTIMIZED,
        route=route,
        updates=updates,
        skipped_job_ids=missing_address,
        message=message,
    )


def optimize_day(
    day: str,
    start_address: str,
    *,
    repository: JobRepository | None = None,
    provider: DistanceProvider | None = None,
    storage: FileStorage | None = None,
    persist: bool = True,
    write_outputs: bool = False,
    time_threshold_percent: float | None = None,
    distance_threshold_percent: float | None = None,
    config: Settings | None = None,
) -> DaySchedule:
    config = config or default_settings
    repository = repository or get_job_repository(config)
    optimizer = RouteOptimizer(
        provider or get_distance_provider(config),
        time_threshold_percent=time_threshold_percent,
        distance_threshold_percent=distance_threshold_percent,
    )

    jobs = repository.list_jobs(day)
    schedule = _order_jobs(day, start_address, jobs, repository, optimizer, config)
    if persist and schedule.updates:
        repository.save_job_orders(schedule.updates)
    if write_outputs:
        schedule.output_dir = _write_run_outputs(storage or FileStorage(root=config.data_root), schedule)
    return schedule


def optimize_schedule(
    start_address: str,
    *,
    start_day: date | None = None,
    days: int | None = None,
    repository: JobRepository | None = None,
    provider: DistanceProvider | None = None,
    persist: bool = True,
    config: Settings | None = None,
) -> list[DaySchedule]:
    """Order every day in the horizon that has at least two scheduled jobs."""
    config = config or default_settings
    repository = repository or get_job_repository(config)
    optimizer = RouteOptimizer(provider or get_distance_provider(config))
    first_day = start_day or date.today()
    horizon = days or config.schedule_horizon_days

    results: list[DaySchedule] = []
    for offset in range(horizon):
        day = (first_day + timedelta(days=offset)).isoformat()
        jobs = repository.list_jobs(day)
        scheduled = sum(1 for job in jobs if job.status == STATUS_SCHEDULED)
        if scheduled < 2:
            logger.debug(f"Skipping {day}: {scheduled} scheduled jobs")
            results.append(DaySchedule(date=day, status=STATUS_SKIPPED, message=f"{scheduled} scheduled jobs"))
            continue

        try:
            schedule = _order_jobs(day, start_address, jobs, repository, optimizer, config)
        except RouteConstructionError as e:
            logger.error(f"Could not order jobs for {day}: {e}")
            results.append(DaySchedule(date=day, status=STATUS_FAILED, message=str(e)))
            continue
        if persist and schedule.updates:
            repository.save_job_orders(schedule.updates)
        results.append(schedule)

    optimized = sum(1 for result in results if result.status == STATUS_OPTIMIZED)
    logger.info(f"Ordered jobs for {optimized}/{horizon} days starting {first_day.isoformat()}")
    return results
