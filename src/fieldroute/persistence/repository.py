"""Job repository contract and the storage strategy factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from ..config import Settings, settings as default_settings
from ..models.domain import STATUS_SCHEDULED, Customer, Job, JobOrderUpdate


class JobRepository(ABC):
    """Contract for loading a day's jobs and storing their route order."""

    @abstractmethod
    def list_jobs(self, day: str) -> list[Job]:
        raise NotImplementedError

    @abstractmethod
    def get_customers(self, customer_ids: Iterable[str]) -> dict[str, Customer]:
        raise NotImplementedError

    @abstractmethod
    def save_job_orders(self, updates: Sequence[JobOrderUpdate]) -> int:
        """Persist order/scheduled_time for each job. Returns the number of rows written."""
        raise NotImplementedError


def job_from_row(row: dict) -> Job:
    order = row.get("order")
    return Job(
        id=str(row["id"]),
        customer_id=str(row["customer_id"]),
        date=str(row["date"]),
        status=row.get("status") or STATUS_SCHEDULED,
        order=int(order) if order is not None else None,
        scheduled_time=row.get("scheduled_time") or None,
    )


def customer_from_row(row: dict) -> Customer:
    return Customer(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        address=str(row.get("address") or "").strip(),
    )


def get_job_repository(config: Settings | None = None) -> JobRepository:
    config = config or default_settings
    match config.storage_mode:
        case "supabase":
            from .database import SupabaseJobRepository

            return SupabaseJobRepository.from_settings(config)
        case "local":
            from .local import LocalJobRepository
            from .filesystem import FileStorage

            return LocalJobRepository(FileStorage(root=config.data_root))
        case _:
            raise ValueError(f"Unknown storage mode '{config.storage_mode}'.")
