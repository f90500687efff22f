"""Factory for distance providers based on configuration."""

from __future__ import annotations

import logging

from ...config import Settings, settings as default_settings
from .google_client import GoogleDistanceMatrixClient
from .heuristic import AddressSimilarityProvider
from .providers import DRIVE_TIME_CACHE, DistanceProvider, DriveTimeCache, GoogleDistanceProvider

logger = logging.getLogger(__name__)

# Heuristic estimates are cached apart from live results so the two never mix.
HEURISTIC_CACHE = DriveTimeCache()


def get_distance_provider(config: Settings | None = None) -> DistanceProvider:
    config = config or default_settings
    match config.distance_mode:
        case "heuristic":
            return AddressSimilarityProvider(cache=HEURISTIC_CACHE, batch_size=config.distance_batch_size)
        case "live":
            return _google_provider(config)
        case "auto":
            if config.google_maps_api_key:
                return _google_provider(config)
            logger.warning(
                "Google Maps API key not configured; ordering routes by address similarity. "
                "Routes will be marked as estimates."
            )
            return AddressSimilarityProvider(cache=HEURISTIC_CACHE, batch_size=config.distance_batch_size)
        case _:
            raise ValueError(f"Unknown distance mode '{config.distance_mode}'.")


def _google_provider(config: Settings) -> GoogleDistanceProvider:
    client = GoogleDistanceMatrixClient(
        api_key=config.google_maps_api_key,
        base_url=config.distance_matrix_base_url,
        timeout=config.distance_timeout_seconds,
        max_retries=config.distance_max_retries,
        backoff_seconds=config.distance_backoff_seconds,
    )
    return GoogleDistanceProvider(
        client=client,
        cache=DRIVE_TIME_CACHE,
        batch_size=config.distance_batch_size,
        max_parallel_requests=config.distance_max_parallel_requests,
    )


def clear_drive_time_caches() -> int:
    return DRIVE_TIME_CACHE.clear() + HEURISTIC_CACHE.clear()
