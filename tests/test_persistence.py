from pathlib import Path

import pytest

from fieldroute.config import Settings
from fieldroute.models.domain import STATUS_SCHEDULED, Customer, Job, JobOrderUpdate
from fieldroute.persistence import database
from fieldroute.persistence.database import SupabaseJobRepository
from fieldroute.persistence.filesystem import FileStorage
from fieldroute.persistence.local import LocalJobRepository
from fieldroute.persistence.repository import get_job_repository, job_from_row


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"


def test_file_storage_run_directories_are_unique(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    first = storage.make_run_directory(prefix="route_test")
    second = storage.make_run_directory(prefix="route_test")

    assert first != second


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_test")

    summary_path = run_dir / "summary.json"
    route_path = run_dir / "route.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(route_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert route_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert storage.read_json(summary_path) == {"hello": "world"}
    assert storage.read_json(run_dir / "missing.json", default=[]) == []


def test_job_from_row_defaults():
    job = job_from_row({"id": 7, "customer_id": 3, "date": "2026-03-02", "order": "2"})

    assert job.id == "7"
    assert job.customer_id == "3"
    assert job.status == STATUS_SCHEDULED
    assert job.order == 2
    assert job.scheduled_time is None


def _local_repository(tmp_path: Path) -> LocalJobRepository:
    repository = LocalJobRepository(FileStorage(root=tmp_path))
    repository.add_customers(
        [
            Customer(id="c1", name="Ada", address="105 Main St"),
            Customer(id="c2", name="Grace", address="500 Elm St"),
        ]
    )
    repository.add_jobs(
        [
            Job(id="j1", customer_id="c1", date="2026-03-02"),
            Job(id="j2", customer_id="c2", date="2026-03-02", status="completed", order=4),
            Job(id="j3", customer_id="c2", date="2026-03-03"),
        ]
    )
    return repository


def test_local_repository_filters_jobs_by_day(tmp_path: Path) -> None:
    repository = _local_repository(tmp_path)

    jobs = repository.list_jobs("2026-03-02")

    assert [job.id for job in jobs] == ["j1", "j2"]
    assert jobs[1].status == "completed"
    assert jobs[1].order == 4


def test_local_repository_returns_requested_customers(tmp_path: Path) -> None:
    repository = _local_repository(tmp_path)

    customers = repository.get_customers(["c2", "nope"])

    assert list(customers) == ["c2"]
    assert customers["c2"].address == "500 Elm St"


def test_local_repository_saves_orders(tmp_path: Path) -> None:
    repository = _local_repository(tmp_path)

    written = repository.save_job_orders(
        [
            JobOrderUpdate(job_id="j1", order=1, scheduled_time="5:00"),
            JobOrderUpdate(job_id="ghost", order=9),
        ]
    )

    assert written == 1
    reloaded = LocalJobRepository(FileStorage(root=tmp_path)).list_jobs("2026-03-02")
    assert reloaded[0].order == 1
    assert reloaded[0].scheduled_time == "5:00"


def test_local_repository_rejects_malformed_store(tmp_path: Path) -> None:
    (tmp_path / "jobs.json").write_text('{"not": "a list"}', encoding="utf-8")
    repository = LocalJobRepository(FileStorage(root=tmp_path))

    with pytest.raises(ValueError):
        repository.list_jobs("2026-03-02")


def test_get_job_repository_local(tmp_path: Path) -> None:
    repository = get_job_repository(Settings(_env_file=None, storage_mode="local", data_root=tmp_path))

    assert isinstance(repository, LocalJobRepository)
    assert repository.storage.root == tmp_path.resolve()


def test_get_job_repository_supabase_requires_credentials(monkeypatch) -> None:
    monkeypatch.setattr(database, "get_supabase_client", lambda url, key: None)

    with pytest.raises(ValueError):
        get_job_repository(Settings(_env_file=None, storage_mode="supabase"))


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table, rows=None):
        self.client = client
        self.table = table
        self.rows = rows or []
        self.filters = []
        self.payload = None

    def select(self, columns):
        self.columns = columns
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, tuple(values)))
        return self

    def update(self, payload):
        self.payload = payload
        return self

    def execute(self):
        if self.client.fail:
            raise RuntimeError("network down")
        self.client.executed.append(self)
        return FakeResponse(self.rows)


class FakeSupabase:
    def __init__(self, tables=None, fail=False):
        self.tables = tables or {}
        self.fail = fail
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name, self.tables.get(name))


def test_supabase_repository_lists_jobs_and_skips_bad_rows() -> None:
    client = FakeSupabase(
        tables={
            "jobs": [
                {"id": "j1", "customer_id": "c1", "date": "2026-03-02", "status": "scheduled"},
                {"id": "broken"},
            ]
        }
    )

    jobs = SupabaseJobRepository(client).list_jobs("2026-03-02")

    assert [job.id for job in jobs] == ["j1"]
    assert client.executed[0].filters == [("eq", "date", "2026-03-02")]


def test_supabase_repository_fetches_customers_by_id() -> None:
    client = FakeSupabase(tables={"customers": [{"id": "c1", "name": "Ada", "address": " 105 Main St "}]})

    customers = SupabaseJobRepository(client).get_customers(["c1", "c1"])

    assert customers["c1"].address == "105 Main St"
    assert client.executed[0].filters == [("in", "id", ("c1",))]
    assert SupabaseJobRepository(client).get_customers([]) == {}


def test_supabase_repository_updates_each_job() -> None:
    client = FakeSupabase()

    written = SupabaseJobRepository(client).save_job_orders(
        [JobOrderUpdate(job_id="j1", order=1, scheduled_time="5:00"), JobOrderUpdate(job_id="j2", order=2)]
    )

    assert written == 2
    assert client.executed[0].payload == {"order": 1, "scheduled_time": "5:00"}
    assert client.executed[1].filters == [("eq", "id", "j2")]


def test_supabase_repository_wraps_client_errors() -> None:
    repository = SupabaseJobRepository(FakeSupabase(fail=True))

    with pytest.raises(RuntimeError):
        repository.list_jobs("2026-03-02")
    with pytest.raises(RuntimeError):
        repository.save_job_orders([JobOrderUpdate(job_id="j1", order=1)])
