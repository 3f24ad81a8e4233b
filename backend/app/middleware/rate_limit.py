"""Per-client rate limiting with in-memory token buckets.

Two tiers, both keyed by client IP:
- global: every non-exempt request (default 120/min)
- auth: POSTs that can be used to guess credentials or invite codes
  (login, register, password reset and change, invite accept; default 10/min)

Buckets live in a `BucketTable` ordered by last use. A client's bucket is
dropped once it has been untouched long enough to have refilled completely,
since a fresh bucket would behave identically; the table is also capped at
`max_clients` entries, evicting the least recently used.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

# Credential and invite-code guessing targets
_AUTH_ENDPOINTS = frozenset({
    "/api/v1/auth/register",
    "/api/v1/auth/login",
    "/api/v1/auth/forgot-password",
    "/api/v1/auth/reset-password",
    "/api/v1/auth/change-password",
    "/api/v1/team/invites/accept",
})

_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc", "/"})

_RETRY_AFTER_SECONDS = "60"


class TokenBucket:
    """Token bucket refilled continuously at `rate` tokens per second."""

    def __init__(self, rate: float, capacity: int, now: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = float(capacity)
        self.last_seen = now

    def consume(self, now: float) -> bool:
        elapsed = max(now - self.last_seen, 0.0)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_seen = now
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False


class BucketTable:
    """Buckets for one tier, least recently used first.

    Args:
        per_minute: Requests allowed per minute per client.
        idle_seconds: Minimum idle time before a bucket may be dropped.
            Raised to the full refill time if lower, so a dropped bucket
            is always one that would have been full again.
        max_clients: Hard cap on tracked clients.
    """

    def __init__(self, per_minute: int, idle_seconds: float = 300.0, max_clients: int = 10_000) -> None:
        self.rate = per_minute / 60.0
        self.capacity = per_minute
        refill_seconds = self.capacity / self.rate if self.rate > 0 else 0.0
        self.idle_seconds = max(idle_seconds, refill_seconds)
        self.max_clients = max_clients
        self._buckets: OrderedDict[str, TokenBucket] = OrderedDict()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, client: str) -> bool:
        return client in self._buckets

    def allow(self, client: str, now: float) -> bool:
        self.prune(now)
        bucket = self._buckets.get(client)
        if bucket is None:
            bucket = TokenBucket(self.rate, self.capacity, now)
            self._buckets[client] = bucket
            while len(self._buckets) > self.max_clients:
                evicted, _ = self._buckets.popitem(last=False)
                logger.debug("Rate-limit table full; evicted %s", evicted)
        else:
            self._buckets.move_to_end(client)
        return bucket.consume(now)

    def prune(self, now: float) -> int:
        """Drop idle buckets from the old end; returns how many were dropped."""
        dropped = 0
        while self._buckets:
            client, bucket = next(iter(self._buckets.items()))
            if now - bucket.last_seen < self.idle_seconds:
                break
            del self._buckets[client]
            dropped += 1
        return dropped


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients over their budget with 429 and Retry-After.

    Args:
        global_rpm: Requests per minute per client across the API.
        auth_rpm: Requests per minute per client on `_AUTH_ENDPOINTS`.
        idle_seconds: Idle time after which a client's buckets are forgotten.
        max_clients: Cap on tracked clients per tier.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        app,
        global_rpm: int = 120,
        auth_rpm: int = 10,
        idle_seconds: float = 300.0,
        max_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self.clock = clock
        self._global_buckets = BucketTable(global_rpm, idle_seconds, max_clients)
        self._auth_buckets = BucketTable(auth_rpm, idle_seconds, max_clients)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self.clock()

        if not self._global_buckets.allow(client_ip, now):
            logger.warning("Rate limit exceeded for %s on %s", client_ip, path)
            return _too_many("Rate limit exceeded. Please retry later.")

        if request.method == "POST" and path in _AUTH_ENDPOINTS:
            if not self._auth_buckets.allow(client_ip, now):
                logger.warning("Auth rate limit exceeded for %s on %s", client_ip, path)
                return _too_many("Too many attempts. Please retry later.")

        return await call_next(request)


def _too_many(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": detail},
        headers={"Retry-After": _RETRY_AFTER_SECONDS},
    )
