"""Per-host probe pacing.

Every target host gets its own token bucket, so discovery runs against
different APIs that share one transport never wait on each other. The wait
imposed on a probe is returned to the caller and ends up in that run's probe
history. Probes are never retried here.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

DEFAULT_REQUESTS_PER_SECOND = 5.0
DEFAULT_BURST_LIMIT = 10


@dataclass
class _HostBucket:
    tokens: float
    updated_at: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ProbePacer:
    """Token buckets keyed by target host.

    Provides:
    - A burst allowance followed by a steady probe rate per host
    - The seconds each probe waited, for per-run accounting
    """

    def __init__(
        self,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
        burst_limit: int = DEFAULT_BURST_LIMIT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize probe pacer.

        Args:
            requests_per_second: Steady probe rate per host
            burst_limit: Probes a host may receive back to back
            clock: Monotonic time source
            sleep: Async sleep used while waiting for a token

        Raises:
            ValueError: Non-positive rate or burst
        """
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if burst_limit < 1:
            raise ValueError("burst_limit must be at least 1")

        self.requests_per_second = requests_per_second
        self.burst_limit = burst_limit
        self._clock = clock
        self._sleep = sleep
        self._buckets: dict[str, _HostBucket] = {}

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> ProbePacer:
        """Build a pacer from the ``probe.rate_limit`` config section."""
        config = config or {}
        return cls(
            requests_per_second=float(config.get("requests_per_second", DEFAULT_REQUESTS_PER_SECOND)),
            burst_limit=int(config.get("burst_limit", DEFAULT_BURST_LIMIT)),
        )

    @staticmethod
    def host_key(url: str) -> str:
        """Bucket key for a URL: scheme, host and explicit port."""
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL:
            return url
        key = f"{parsed.scheme}://{parsed.host}"
        return f"{key}:{parsed.port}" if parsed.port else key

    @property
    def hosts(self) -> list[str]:
        return sorted(self._buckets)

    async def wait(self, url: str) -> float:
        """Take one token for the URL's host.

        Args:
            url: Probe target URL

        Returns:
            Seconds spent waiting for the token
        """
        bucket = self._bucket(self.host_key(url))
        waited = 0.0

        async with bucket.lock:
            while True:
                self._refill(bucket)
                if bucket.tokens >= 1:
                    bucket.tokens -= 1
                    return waited

                delay = (1 - bucket.tokens) / self.requests_per_second
                waited += delay
                await self._sleep(delay)

    def _bucket(self, key: str) -> _HostBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = _HostBucket(tokens=float(self.burst_limit), updated_at=self._clock())
            self._buckets[key] = bucket
        return bucket

    def _refill(self, bucket: _HostBucket) -> None:
        now = self._clock()
        earned = (now - bucket.updated_at) * self.requests_per_second
        bucket.tokens = min(bucket.tokens + earned, float(self.burst_limit))
        bucket.updated_at = now
