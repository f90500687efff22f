"""Distance providers resolving drive time between address pairs."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable

import httpx

from ...config import settings
from .google_client import GoogleDistanceMatrixClient
from .models import LIVE, DriveTime

logger = logging.getLogger(__name__)

AddressPair = tuple[str, str]


class DriveTimeCache:
    """Process-lifetime cache of successful lookups keyed by (origin, destination).

    Entries are never replaced once written. Lookups for a pair that is not yet
    cached are shared between every caller using this cache, including callers
    from different providers.
    """

    def __init__(self) -> None:
        self._entries: dict[AddressPair, DriveTime] = {}
        self._in_flight: dict[AddressPair, Future] = {}
        self._lock = threading.Lock()

    def get(self, pair: AddressPair) -> DriveTime | None:
        return self._entries.get(pair)

    def add(self, pair: AddressPair, value: DriveTime) -> DriveTime:
        """Insert if absent and return whichever value ends up cached."""
        with self._lock:
            return self._entries.setdefault(pair, value)

    def get_or_compute(
        self, pair: AddressPair, compute: Callable[[], DriveTime | None]
    ) -> DriveTime | None:
        """Return the cached value for ``pair`` or run ``compute`` once for all concurrent callers.

        Callers that arrive while a lookup is running wait for its result.
        Only non-None results are cached, so a failed pair is retried next time.
        """
        with self._lock:
            cached = self._entries.get(pair)
            if cached is not None:
                return cached
            future = self._in_flight.get(pair)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[pair] = future
        if not owner:
            return future.result()

        result: DriveTime | None = None
        try:
            result = compute()
            if result is not None:
                result = self.add(pair, result)
        finally:
            with self._lock:
                self._in_flight.pop(pair, None)
            future.set_result(result)
        return result

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)


# Shared by every provider the composition root builds.
DRIVE_TIME_CACHE = DriveTimeCache()


class DistanceProvider(ABC):
    """Contract for drive-time lookups with caching and batched resolution."""

    provenance: str = LIVE

    def __init__(
        self,
        cache: DriveTimeCache | None = None,
        batch_size: int | None = None,
        max_parallel_requests: int | None = None,
    ) -> None:
        self.cache = cache if cache is not None else DriveTimeCache()
        self.batch_size = batch_size or settings.distance_batch_size
        self.max_parallel_requests = max_parallel_requests or settings.distance_max_parallel_requests

    @abstractmethod
    def _lookup(self, origin: str, destination: str) -> DriveTime | None:
        """Perform one uncached lookup. Return None when the pair cannot be priced."""
        raise NotImplementedError

    def resolve(self, origin: str, destination: str) -> DriveTime | None:
        if not origin or not destination:
            raise ValueError("Origin and destination addresses must be non-empty.")
        return self.cache.get_or_compute((origin, destination), lambda: self._lookup(origin, destination))

    def resolve_many(self, pairs: Iterable[AddressPair]) -> dict[AddressPair, DriveTime]:
        """Resolve many pairs in batches. Unresolvable pairs are absent from the result."""
        unique: list[AddressPair] = list(dict.fromkeys(pairs))
        results: dict[AddressPair, DriveTime] = {}
        pending: list[AddressPair] = []
        for pair in unique:
            cached = self.cache.get(pair)
            if cached is not None:
                results[pair] = cached
            else:
                pending.append(pair)

        if not pending:
            return results

        start_time = time.time()
        batches = [pending[i : i + self.batch_size] for i in range(0, len(pending), self.batch_size)]
        logger.info(
            f"Resolving {len(pending)} address pairs in {len(batches)} batches "
            f"({len(results)} cached, max {self.max_parallel_requests} concurrent)"
        )

        failed = 0
        workers = min(self.max_parallel_requests, self.batch_size)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for batch in batches:
                resolved = list(executor.map(self._resolve_quietly, batch))
                for pair, value in zip(batch, resolved):
                    if value is None:
                        failed += 1
                    else:
                        results[pair] = value

        elapsed = time.time() - start_time
        if failed:
            logger.warning(
                f"Partial failure: {failed}/{len(pending)} address pairs could not be resolved "
                f"({elapsed:.2f}s). Those legs are treated as unknown."
            )
        else:
            logger.info(f"Resolved {len(pending)} address pairs in {elapsed:.2f}s")
        return results

    def _resolve_quietly(self, pair: AddressPair) -> DriveTime | None:
        try:
            return self.resolve(*pair)
        except Exception as e:
            logger.warning(f"Drive time lookup failed for '{pair[0]}' -> '{pair[1]}': {e}")
            return None


class GoogleDistanceProvider(DistanceProvider):
    """Live drive times from the Google Distance Matrix API."""

    provenance = LIVE

    def __init__(
        self,
        client: GoogleDistanceMatrixClient | None = None,
        cache: DriveTimeCache | None = None,
        batch_size: int | None = None,
        max_parallel_requests: int | None = None,
    ) -> None:
        super().__init__(cache=cache, batch_size=batch_size, max_parallel_requests=max_parallel_requests)
        self.client = client or GoogleDistanceMatrixClient()

    def _lookup(self, origin: str, destination: str) -> DriveTime | None:
        try:
            element = self.client.element(origin, destination)
            if element is None:
                return None
            duration = element["duration"]
            distance = element["distance"]
            return DriveTime(
                duration_minutes=max(0.0, float(duration["value"]) / 60.0),
                distance_meters=max(0.0, float(distance["value"])),
                duration_text=str(duration.get("text", "")),
                distance_text=str(distance.get("text", "")),
                provenance=LIVE,
            )
        except (httpx.HTTPError, ValueError, ConnectionError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Drive time lookup failed for '{origin}' -> '{destination}': {e}")
            return None
