"""Routing request/response schemas."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..services.routing.models import DaySchedule, OptimizedRoute


class StopModel(BaseModel):
    id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)

    @field_validator("address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("address must not be blank")
        return stripped


class RouteOptimizeRequest(BaseModel):
    start_address: str = Field(..., min_length=1, description="Where the crew leaves from.")
    stops: List[StopModel] = Field(default_factory=list)
    time_threshold_percent: Optional[float] = Field(
        default=None,
        ge=0,
        description="Drive times within this percentage of each other are compared by distance.",
    )
    distance_threshold_percent: Optional[float] = Field(
        default=None,
        ge=0,
        description="Minimum distance saving (percent) that overrides a slightly faster candidate.",
    )


class DayOptimizeRequest(BaseModel):
    date: dt.date
    start_address: str = Field(..., min_length=1)
    persist: bool = True
    write_outputs: bool = False
    time_threshold_percent: Optional[float] = Field(default=None, ge=0)
    distance_threshold_percent: Optional[float] = Field(default=None, ge=0)


class ScheduleOptimizeRequest(BaseModel):
    start_address: str = Field(..., min_length=1)
    start_date: Optional[dt.date] = None
    days: Optional[int] = Field(default=None, ge=1, le=366)
    persist: bool = True


class RouteSegmentModel(BaseModel):
    from_address: str
    to_address: str
    from_stop_id: Optional[str]
    to_stop_id: str
    duration_minutes: float
    distance_meters: float
    duration_text: str
    distance_text: str


class UnresolvedLegModel(BaseModel):
    from_address: str
    to_address: str
    from_stop_id: Optional[str]
    to_stop_id: str


class OrderedStopModel(BaseModel):
    id: str
    address: str
    order: int


class RouteResponse(BaseModel):
    stops: List[OrderedStopModel]
    segments: List[RouteSegmentModel]
    total_duration_minutes: float
    total_distance_meters: float
    total_duration_text: str
    total_distance_text: str
    quality: str
    unresolved_legs: List[UnresolvedLegModel]

    @classmethod
    def from_route(cls, route: OptimizedRoute) -> "RouteResponse":
        return cls(
            stops=[
                OrderedStopModel(id=stop.id, address=stop.address, order=order)
                for order, stop in enumerate(route.stops, start=1)
            ],
            segments=[RouteSegmentModel(**asdict(segment)) for segment in route.segments],
            total_duration_minutes=route.total_duration_minutes,
            total_distance_meters=route.total_distance_meters,
            total_duration_text=route.total_duration_text,
            total_distance_text=route.total_distance_text,
            quality=route.quality,
            unresolved_legs=[UnresolvedLegModel(**asdict(leg)) for leg in route.unresolved_legs],
        )


class JobOrderModel(BaseModel):
    job_id: str
    order: int
    scheduled_time: Optional[str]


class DayScheduleResponse(BaseModel):
    date: str
    status: str
    route: Optional[RouteResponse]
    updates: List[JobOrderModel]
    skipped_job_ids: List[str]
    message: Optional[str] = None
    output_dir: Optional[str] = None

    @classmethod
    def from_schedule(cls, schedule: DaySchedule) -> "DayScheduleResponse":
        return cls(
            date=schedule.date,
            status=schedule.status,
            route=RouteResponse.from_route(schedule.route) if schedule.route else None,
            updates=[JobOrderModel(**asdict(update)) for update in schedule.updates],
            skipped_job_ids=schedule.skipped_job_ids,
            message=schedule.message,
            output_dir=schedule.output_dir,
        )


class ScheduleResponse(BaseModel):
    days: List[DayScheduleResponse]
    optimized_days: int
