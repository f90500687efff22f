"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/distance", status_code=status.HTTP_200_OK)
def health_distance() -> dict:
    """Report which distance provider is active and whether the live API answers."""
    from ...services.routing.dispatcher import get_distance_provider
    from ...services.routing.google_client import check_health

    try:
        provider = get_distance_provider()
    except ValueError as e:
        return {"service": "distance", "healthy": False, "error": str(e)}
    live_healthy = check_health() if settings.google_maps_api_key else False
    return {
        "service": "distance",
        "mode": settings.distance_mode,
        "provenance": provider.provenance,
        "live_configured": bool(settings.google_maps_api_key),
        "live_healthy": live_healthy,
    }


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check the configured job store."""
    if settings.storage_mode == "local":
        return {
            "configured": True,
            "storage_mode": "local",
            "data_root": str(settings.data_root),
        }

    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "storage_mode": "supabase",
            "message": "Supabase not configured. Set FIELDROUTE_SUPABASE_URL and FIELDROUTE_SUPABASE_KEY environment variables.",
        }

    try:
        supabase.table("jobs").select("id", count="exact").limit(1).execute()
        return {"configured": True, "storage_mode": "supabase", "connected": True}
    except Exception as exc:
        return {
            "configured": True,
            "storage_mode": "supabase",
            "connected": False,
            "error": str(exc),
        }
