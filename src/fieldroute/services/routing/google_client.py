"""HTTP client for the Google Distance Matrix API."""

from __future__ import annotations

import logging
import time

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


class GoogleDistanceMatrixClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.distance_matrix_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.distance_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.distance_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        """Get a fresh HTTP client; lookups run on worker threads."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def matrix(self, origins: list[str], destinations: list[str]) -> dict:
        """Fetch the raw distance matrix for the given origins and destinations."""
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")

        params = {
            "origins": "|".join(origins),
            "destinations": "|".join(destinations),
            "units": "imperial",
            "key": self.api_key,
        }
        url = f"{self.base_url}/distancematrix/json"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    status = data.get("status")
                    if status != "OK":
                        message = data.get("error_message") or status or "unknown status"
                        raise ValueError(f"Distance Matrix request failed: {message}")
                    return data
                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Distance Matrix request timed out after {self.max_retries} retries: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Distance Matrix timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to Distance Matrix service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Distance Matrix network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()

    def element(self, origin: str, destination: str) -> dict | None:
        """Return the single matrix element for origin -> destination, or None if Google has no route."""
        data = self.matrix([origin], [destination])
        rows = data.get("rows") or []
        if not rows or not rows[0].get("elements"):
            raise ValueError("Distance Matrix response missing rows/elements.")
        element = rows[0]["elements"][0]
        if element.get("status") != "OK":
            logger.info(f"No route from '{origin}' to '{destination}': {element.get('status')}")
            return None
        if "duration" not in element or "distance" not in element:
            raise ValueError("Distance Matrix element missing duration/distance.")
        return element


def check_health(api_key: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check Distance Matrix availability with a minimal one-element request."""
    key = api_key or settings.google_maps_api_key
    if not key:
        return False
    try:
        client = GoogleDistanceMatrixClient(api_key=key, max_retries=0, transport=transport)
        data = client.matrix(["Times Square, New York, NY"], ["Union Square, New York, NY"])
        return isinstance(data.get("rows"), list)
    except (httpx.HTTPError, ValueError, ConnectionError):
        return False
