# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Sliding-window rate limiter keyed by caller address.

Each key keeps the timestamps of its requests inside the current window.
Recording a request and checking the limit happen under one lock, so two
concurrent requests from the same address can never both take the last slot.

Example:
    Guarding a route::

        limiter = RateLimiter(max_requests=5, window_seconds=900)
        await limiter.hit(request.client.host)  # raises RateLimitError when full
"""

import asyncio
import math
import time
from collections import deque
from collections.abc import Callable

from .config import RateLimitPolicy
from .errors import RateLimitError


class RateLimiter:
    """In-memory per-address sliding-window limiter.

    Attributes:
        max_requests: Requests allowed per window for one key.
        window_seconds: Window length in seconds.
        enabled: When False every request is admitted and nothing is recorded.
        hits: Mapping of key to the timestamps of its in-window requests.
        lock: Asyncio lock serialising check-and-record.
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: int = 900,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self.clock = clock
        self.hits: dict[str, deque[float]] = {}
        self.lock = asyncio.Lock()
        self.last_sweep = clock()

    @classmethod
    def from_policy(cls, policy: RateLimitPolicy, **kwargs) -> "RateLimiter":
        return cls(
            max_requests=policy.max_requests,
            window_seconds=policy.window_seconds,
            enabled=policy.enabled,
            **kwargs,
        )

    def _expire(self, bucket: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()

    def _sweep(self, now: float) -> int:
        stale = []
        for key, bucket in self.hits.items():
            self._expire(bucket, now)
            if not bucket:
                stale.append(key)
        for key in stale:
            del self.hits[key]
        self.last_sweep = now
        return len(stale)

    async def hit(self, key: str) -> int:
        """Record one request for ``key``.

        Returns:
            Requests still available to ``key`` in the current window.

        Raises:
            RateLimitError: The window is already full; the request is not
                recorded and ``retry_after`` is the wait until a slot frees.
        """
        if not self.enabled:
            return self.max_requests
        async with self.lock:
            now = self.clock()
            if now - self.last_sweep >= self.window_seconds:
                self._sweep(now)
            bucket = self.hits.setdefault(key, deque())
            self._expire(bucket, now)
            if len(bucket) >= self.max_requests:
                retry_after = max(1, math.ceil(bucket[0] + self.window_seconds - now))
                raise RateLimitError(retry_after=retry_after, window_seconds=self.window_seconds)
            bucket.append(now)
            return self.max_requests - len(bucket)

    async def remaining(self, key: str) -> int:
        """Requests ``key`` may still make without being limited."""
        if not self.enabled:
            return self.max_requests
        async with self.lock:
            bucket = self.hits.get(key)
            if not bucket:
                return self.max_requests
            self._expire(bucket, self.clock())
            if not bucket:
                del self.hits[key]
            return self.max_requests - len(bucket)

    async def prune(self) -> int:
        """Drop keys whose windows have fully expired.

        Returns:
            Number of keys removed.
        """
        async with self.lock:
            return self._sweep(self.clock())
