import json
import re
from datetime import date
from pathlib import Path

import pytest

from fieldroute.config import Settings
from fieldroute.models.domain import Customer, Job
from fieldroute.persistence.filesystem import FileStorage
from fieldroute.persistence.local import LocalJobRepository
from fieldroute.services.routing import service as routing_service
from fieldroute.services.routing.models import DriveTime, OptimizedRoute, RouteSegment, Stop
from fieldroute.services.routing.optimizer import RouteConstructionError
from fieldroute.services.routing.providers import DistanceProvider, DriveTimeCache

START = "100 Main St"


class DummyProvider(DistanceProvider):
    """Main Street addresses are close together; anything else is 30 minutes away."""

    def __init__(self, unreachable=()):
        super().__init__(cache=DriveTimeCache(), batch_size=10, max_parallel_requests=2)
        self.unreachable = set(unreachable)

    def _lookup(self, origin, destination):
        if origin in self.unreachable or destination in self.unreachable:
            return None
        if "Main" in origin and "Main" in destination:
            first = int(re.match(r"\d+", origin).group())
            second = int(re.match(r"\d+", destination).group())
            minutes = 1 + abs(first - second) * 0.2
        else:
            minutes = 30.0
        return DriveTime(
            duration_minutes=minutes,
            distance_meters=minutes * 400,
            duration_text=f"{minutes:.0f} mins",
            distance_text="",
        )


@pytest.fixture
def config(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, data_root=tmp_path, storage_mode="local")


@pytest.fixture
def repository(tmp_path: Path) -> LocalJobRepository:
    repository = LocalJobRepository(FileStorage(root=tmp_path))
    repository.add_customers(
        [
            Customer(id="c1", name="Ada", address="105 Main St"),
            Customer(id="c2", name="Grace", address="500 Elm St"),
            Customer(id="c3", name="Linus", address="110 Main St"),
            Customer(id="c4", name="Barbara", address="1 Nowhere Rd"),
            Customer(id="c5", name="Ken", address="2 Nowhere Rd"),
            Customer(id="c6", name="Edsger", address=""),
        ]
    )
    repository.add_jobs(
        [
            Job(id="j1", customer_id="c1", date="2026-03-02"),
            Job(id="j2", customer_id="c2", date="2026-03-02"),
            Job(id="j3", customer_id="c3", date="2026-03-02"),
            Job(id="j4", customer_id="c1", date="2026-03-02", status="completed", order=7, scheduled_time="9:00"),
            Job(id="j5", customer_id="c2", date="2026-03-02", status="in-progress"),
            Job(id="j6", customer_id="c3", date="2026-03-03"),
            Job(id="j7", customer_id="c4", date="2026-03-04"),
            Job(id="j8", customer_id="c5", date="2026-03-04"),
        ]
    )
    return repository


def _orders(schedule) -> dict:
    return {update.job_id: (update.order, update.scheduled_time) for update in schedule.updates}


def test_optimize_day_orders_jobs_and_assigns_start_times(repository, config):
    schedule = routing_service.optimize_day(
        "2026-03-02", START, repository=repository, provider=DummyProvider(), config=config
    )

    assert schedule.status == routing_service.STATUS_OPTIMIZED
    assert [stop.id for stop in schedule.route.stops] == ["j1", "j3", "j2"]
    orders = _orders(schedule)
    # 5:00 start, 60 minute jobs, 2 and 30 minute drives between them
    assert orders["j1"] == (1, "5:00")
    assert orders["j3"] == (2, "6:02")
    assert orders["j2"] == (3, "7:32")
    assert orders["j4"] == (7, "9:00")
    assert orders["j5"] == (5, None)


def test_optimize_day_persists_orders(repository, config, tmp_path: Path):
    routing_service.optimize_day("2026-03-02", START, repository=repository, provider=DummyProvider(), config=config)

    rows = {row["id"]: row for row in json.loads((tmp_path / "jobs.json").read_text(encoding="utf-8"))}
    assert rows["j1"]["order"] == 1
    assert rows["j3"]["order"] == 2
    assert rows["j2"]["scheduled_time"] == "7:32"
    assert rows["j6"]["order"] is None


def test_optimize_day_without_persist_leaves_store_untouched(repository, config, tmp_path: Path):
    before = (tmp_path / "jobs.json").read_text(encoding="utf-8")

    routing_service.optimize_day(
        "2026-03-02", START, repository=repository, provider=DummyProvider(), persist=False, config=config
    )

    assert (tmp_path / "jobs.json").read_text(encoding="utf-8") == before


def test_optimize_day_writes_run_outputs(repository, config, tmp_path: Path):
    schedule = routing_service.optimize_day(
        "2026-03-02",
        START,
        repository=repository,
        provider=DummyProvider(),
        storage=FileStorage(root=tmp_path),
        write_outputs=True,
        config=config,
    )

    output_dir = Path(schedule.output_dir)
    assert output_dir.parent == tmp_path / "outputs"
    summary = json.loads((output_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["date"] == "2026-03-02"
    assert [stop["id"] for stop in summary["route"]["stops"]] == ["j1", "j3", "j2"]
    assert (output_dir / "route.csv").read_text(encoding="utf-8").startswith("order,stop_id")


def test_jobs_without_address_ride_along(repository, config):
    repository.add_jobs([Job(id="j9", customer_id="c6", date="2026-03-02")])

    schedule = routing_service.optimize_day(
        "2026-03-02", START, repository=repository, provider=DummyProvider(), persist=False, config=config
    )

    assert schedule.skipped_job_ids == ["j9"]
    assert "j9" not in [stop.id for stop in schedule.route.stops]
    assert _orders(schedule)["j9"][0] > 3


def test_optimize_day_raises_when_start_unreachable(repository, config):
    provider = DummyProvider(unreachable={"1 Nowhere Rd", "2 Nowhere Rd"})

    with pytest.raises(RouteConstructionError):
        routing_service.optimize_day("2026-03-04", START, repository=repository, provider=provider, config=config)


def test_optimize_day_uses_configured_repository_and_provider(monkeypatch, repository, config):
    monkeypatch.setattr(routing_service, "get_job_repository", lambda cfg: repository)
    monkeypatch.setattr(routing_service, "get_distance_provider", lambda cfg: DummyProvider())

    schedule = routing_service.optimize_day("2026-03-02", START, persist=False, config=config)

    assert [stop.id for stop in schedule.route.stops] == ["j1", "j3", "j2"]


def test_optimize_schedule_skips_light_days_and_reports_failures(repository, config):
    provider = DummyProvider(unreachable={"1 Nowhere Rd", "2 Nowhere Rd"})

    results = routing_service.optimize_schedule(
        START,
        start_day=date(2026, 3, 2),
        days=4,
        repository=repository,
        provider=provider,
        config=config,
    )

    statuses = [(result.date, result.status) for result in results]
    assert statuses == [
        ("2026-03-02", routing_service.STATUS_OPTIMIZED),
        ("2026-03-03", routing_service.STATUS_SKIPPED),
        ("2026-03-04", routing_service.STATUS_FAILED),
        ("2026-03-05", routing_service.STATUS_SKIPPED),
    ]
    assert "Cannot construct route" in results[2].message
    assert repository.list_jobs("2026-03-02")[0].order == 1


def test_optimize_schedule_uses_configured_horizon(repository, tmp_path: Path):
    config = Settings(_env_file=None, data_root=tmp_path, schedule_horizon_days=3)

    results = routing_service.optimize_schedule(
        START, start_day=date(2026, 3, 2), repository=repository, provider=DummyProvider(), config=config
    )

    assert len(results) == 3


def test_build_order_updates_uses_default_drive_for_unresolved_legs():
    route = OptimizedRoute(
        stops=[Stop(id="a", address="1 A St"), Stop(id="b", address="2 B St")],
        segments=[
            RouteSegment(
                from_address=START,
                to_address="1 A St",
                from_stop_id=None,
                to_stop_id="a",
                duration_minutes=12.0,
                distance_meters=900.0,
                duration_text="12 mins",
                distance_text="0.6 mi",
            )
        ],
        total_duration_minutes=12.0,
        total_distance_meters=900.0,
        total_duration_text="12 mins",
        total_distance_text="0.6 mi",
    )
    others = [Job(id="x", customer_id="c", date="2026-03-02", status="completed", order=1)]

    updates = routing_service.build_order_updates(
        route, others, day_start_hour=5, job_duration_minutes=60, default_drive_minutes=10
    )

    assert [(u.job_id, u.order, u.scheduled_time) for u in updates] == [
        ("a", 1, "5:00"),
        ("b", 2, "6:10"),
        ("x", 3, None),
    ]
