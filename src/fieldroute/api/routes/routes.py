"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.routing import (
    DayOptimizeRequest,
    DayScheduleResponse,
    RouteOptimizeRequest,
    RouteResponse,
    ScheduleOptimizeRequest,
    ScheduleResponse,
)
from ...services.routing.dispatcher import clear_drive_time_caches, get_distance_provider
from ...services.routing.models import Stop
from ...services.routing.optimizer import optimize_route
from ...services.routing.service import STATUS_OPTIMIZED, optimize_day, optimize_schedule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=RouteResponse, status_code=status.HTTP_200_OK)
def optimize(payload: RouteOptimizeRequest) -> RouteResponse:
    """Order ad-hoc stops from a starting address without touching stored jobs."""
    try:
        route = optimize_route(
            payload.start_address,
            [Stop(id=stop.id, address=stop.address) for stop in payload.stops],
            get_distance_provider(),
            time_threshold_percent=payload.time_threshold_percent,
            distance_threshold_percent=payload.distance_threshold_percent,
        )
        return RouteResponse.from_route(route)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc


@router.post("/optimize-day", response_model=DayScheduleResponse, status_code=status.HTTP_200_OK)
def optimize_day_endpoint(payload: DayOptimizeRequest) -> DayScheduleResponse:
    """Order one day's scheduled jobs and store their order numbers."""
    try:
        schedule = optimize_day(
            payload.date.isoformat(),
            payload.start_address,
            persist=payload.persist,
            write_outputs=payload.write_outputs,
            time_threshold_percent=payload.time_threshold_percent,
            distance_threshold_percent=payload.distance_threshold_percent,
        )
        return DayScheduleResponse.from_schedule(schedule)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing jobs for {payload.date}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize day: {str(exc)}",
        ) from exc


@router.post("/optimize-schedule", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def optimize_schedule_endpoint(payload: ScheduleOptimizeRequest) -> ScheduleResponse:
    """Order every upcoming day that has at least two scheduled jobs."""
    try:
        schedules = optimize_schedule(
            payload.start_address,
            start_day=payload.start_date,
            days=payload.days,
            persist=payload.persist,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing schedule: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize schedule: {str(exc)}",
        ) from exc

    return ScheduleResponse(
        days=[DayScheduleResponse.from_schedule(schedule) for schedule in schedules],
        optimized_days=sum(1 for schedule in schedules if schedule.status == STATUS_OPTIMIZED),
    )


@router.delete("/drive-time-cache", status_code=status.HTTP_200_OK)
def clear_drive_time_cache() -> dict:
    cleared = clear_drive_time_caches()
    return {"success": True, "cleared": cleared}
