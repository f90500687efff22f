"""JSON-file job store for running without the hosted database."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from typing import Iterable, Sequence

from ..models.domain import Customer, Job, JobOrderUpdate
from .filesystem import FileStorage
from .repository import JobRepository, customer_from_row, job_from_row

logger = logging.getLogger(__name__)

CUSTOMERS_FILE = "customers.json"
JOBS_FILE = "jobs.json"


class LocalJobRepository(JobRepository):
    """Stores customers and jobs as JSON arrays under the data root."""

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage
        self.customers_path = storage.root / CUSTOMERS_FILE
        self.jobs_path = storage.root / JOBS_FILE
        self._lock = threading.Lock()

    def _load_job_rows(self) -> list[dict]:
        rows = self.storage.read_json(self.jobs_path, default=[])
        if not isinstance(rows, list):
            raise ValueError(f"Job store '{self.jobs_path}' must contain a JSON array.")
        return rows

    def list_jobs(self, day: str) -> list[Job]:
        return [job_from_row(row) for row in self._load_job_rows() if str(row.get("date")) == day]

    def get_customers(self, customer_ids: Iterable[str]) -> dict[str, Customer]:
        wanted = set(customer_ids)
        rows = self.storage.read_json(self.customers_path, default=[])
        customers = (customer_from_row(row) for row in rows)
        return {customer.id: customer for customer in customers if customer.id in wanted}

    def save_job_orders(self, updates: Sequence[JobOrderUpdate]) -> int:
        by_id = {update.job_id: update for update in updates}
        written = 0
        with self._lock:
            rows = self._load_job_rows()
            for row in rows:
                update = by_id.get(str(row.get("id")))
                if update is None:
                    continue
                row["order"] = update.order
                row["scheduled_time"] = update.scheduled_time
                written += 1
            self.storage.write_json(self.jobs_path, rows)

        missing = len(by_id) - written
        if missing:
            logger.warning(f"{missing} job order updates had no matching job in {self.jobs_path}")
        return written

    def add_customers(self, customers: Sequence[Customer]) -> None:
        with self._lock:
            rows = self.storage.read_json(self.customers_path, default=[])
            rows.extend(asdict(customer) for customer in customers)
            self.storage.write_json(self.customers_path, rows)

    def add_jobs(self, jobs: Sequence[Job]) -> None:
        with self._lock:
            rows = self._load_job_rows()
            rows.extend(asdict(job) for job in jobs)
            self.storage.write_json(self.jobs_path, rows)
