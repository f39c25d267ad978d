"""
Token bucket rate limiter for the BFF.
"""

import heapq
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from bff_shared.logging import get_logger

WINDOW_SECONDS = 60.0


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class TokenBucketRateLimiter:
    """In-process token bucket per client.

    Each client starts with ``limit_per_minute`` tokens which refill
    continuously over a minute. A limit of zero or less disables limiting.
    """

    def __init__(
        self,
        limit_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        max_clients: int = 10000,
    ):
        self.limit = limit_per_minute
        self.clock = clock
        self.max_clients = max_clients
        self.logger = get_logger("bff.rate_limiter")
        self._buckets: Dict[str, _Bucket] = {}

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    @property
    def refill_rate(self) -> float:
        return self.limit / WINDOW_SECONDS

    def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Take one token for ``client_id`` and report the outcome."""
        if not self.enabled:
            return {"allowed": True, "limit": None, "remaining": None, "reset_in_seconds": 0}

        now = self.clock()
        bucket = self._buckets.get(client_id)
        if bucket is None:
            self._make_room(now)
            bucket = _Bucket(tokens=float(self.limit), updated_at=now)
            self._buckets[client_id] = bucket
        else:
            elapsed = max(0.0, now - bucket.updated_at)
            bucket.tokens = min(float(self.limit), bucket.tokens + elapsed * self.refill_rate)
            bucket.updated_at = now

        if bucket.tokens < 1.0:
            retry_after = max(1, int((1.0 - bucket.tokens) / self.refill_rate + 0.999))
            self.logger.warning("Rate limit exceeded", client_id=client_id, limit=self.limit)
            return {
                "allowed": False,
                "limit": self.limit,
                "remaining": 0,
                "reset_in_seconds": retry_after,
                "retry_after": retry_after,
            }

        bucket.tokens -= 1.0
        missing = float(self.limit) - bucket.tokens
        return {
            "allowed": True,
            "limit": self.limit,
            "remaining": int(bucket.tokens),
            "reset_in_seconds": int(missing / self.refill_rate + 0.999),
        }

    def reset(self, client_id: Optional[str] = None) -> None:
        if client_id is None:
            self._buckets.clear()
        else:
            self._buckets.pop(client_id, None)

    def _make_room(self, now: float) -> None:
        """Keep the table under ``max_clients``: idle buckets go first, then the least recently used."""
        if len(self._buckets) < self.max_clients:
            return
        for key in [k for k, b in self._buckets.items() if now - b.updated_at >= WINDOW_SECONDS]:
            del self._buckets[key]

        overflow = len(self._buckets) - self.max_clients + 1
        if overflow > 0:
            stale = heapq.nsmallest(overflow, self._buckets.items(), key=lambda item: item[1].updated_at)
            for key, _ in stale:
                del self._buckets[key]
            self.logger.warning("Rate limiter table full, evicted buckets", evicted=len(stale))


class RateLimitMiddleware:
    """Resolves the client of a request and consults the limiter."""

    def __init__(self, rate_limiter: TokenBucketRateLimiter):
        self.rate_limiter = rate_limiter
        self.logger = get_logger("bff.rate_limit_middleware")

    def check_request(self, request: Request) -> Dict[str, Any]:
        return self.rate_limiter.check_rate_limit(self._get_client_id(request))

    def _get_client_id(self, request: Request) -> str:
        """Caller IP, first X-Forwarded-For hop when proxied. Token claims are ignored."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return f"ip:{forwarded_for.split(',')[0].strip()}"

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return f"ip:{real_ip}"

        return f"ip:{request.client.host}" if request.client else "ip:unknown"

    @staticmethod
    def apply_headers(response, result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        if result.get("limit") is None:
            return
        response.headers["X-RateLimit-Limit"] = str(result["limit"])
        response.headers["X-RateLimit-Remaining"] = str(result.get("remaining", 0))
        response.headers["X-RateLimit-Reset"] = str(result.get("reset_in_seconds", 0))
