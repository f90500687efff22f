"""Domain models for customer and job records."""

from dataclasses import dataclass
from typing import Optional

STATUS_SCHEDULED = "scheduled"


@dataclass(slots=True)
class Customer:
    """A customer whose property the crew visits."""

    id: str
    name: str
    address: str


@dataclass(slots=True)
class Job:
    """A dated visit to a customer."""

    id: str
    customer_id: str
    date: str
    status: str = STATUS_SCHEDULED
    order: Optional[int] = None
    scheduled_time: Optional[str] = None


@dataclass(slots=True)
class JobOrderUpdate:
    """New position and start time for a job after route ordering."""

    job_id: str
    order: int
    scheduled_time: Optional[str] = None
