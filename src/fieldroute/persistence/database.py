"""Supabase persistence for jobs and customers."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from supabase import Client

from ..config import Settings
from ..db.supabase import get_supabase_client
from ..models.domain import Customer, Job, JobOrderUpdate
from .repository import JobRepository, customer_from_row, job_from_row

logger = logging.getLogger(__name__)


class SupabaseJobRepository(JobRepository):
    """Reads and writes the hosted ``jobs`` and ``customers`` tables.

    Row-level security on the project scopes every query to the key's owner.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, config: Settings) -> "SupabaseJobRepository":
        client = get_supabase_client(config.supabase_url, config.supabase_key)
        if client is None:
            raise ValueError(
                "Supabase storage selected but not configured. "
                "Set FIELDROUTE_SUPABASE_URL and FIELDROUTE_SUPABASE_KEY."
            )
        return cls(client)

    def list_jobs(self, day: str) -> list[Job]:
        try:
            response = self.client.table("jobs").select("*").eq("date", day).execute()
        except Exception as e:
            raise RuntimeError(f"Failed to fetch jobs for {day}: {e}") from e

        jobs: list[Job] = []
        for row in response.data or []:
            try:
                jobs.append(job_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid job row: {e}")
        logger.info(f"Fetched {len(jobs)} jobs for {day} from database")
        return jobs

    def get_customers(self, customer_ids: Iterable[str]) -> dict[str, Customer]:
        ids = sorted(set(customer_ids))
        if not ids:
            return {}
        try:
            response = self.client.table("customers").select("id,name,address").in_("id", ids).execute()
        except Exception as e:
            raise RuntimeError(f"Failed to fetch customers: {e}") from e

        customers: dict[str, Customer] = {}
        for row in response.data or []:
            try:
                customer = customer_from_row(row)
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping invalid customer row: {e}")
                continue
            customers[customer.id] = customer
        return customers

    def save_job_orders(self, updates: Sequence[JobOrderUpdate]) -> int:
        written = 0
        for update in updates:
            try:
                self.client.table("jobs").update(
                    {"order": update.order, "scheduled_time": update.scheduled_time}
                ).eq("id", update.job_id).execute()
            except Exception as e:
                raise RuntimeError(f"Failed to update order for job {update.job_id}: {e}") from e
            written += 1
        logger.info(f"Updated order for {written} jobs in database")
        return written
