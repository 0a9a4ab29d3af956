"""Request rate limiting and the free-scan quota of the public audit tool.

Both keep their counters in Redis outside dev/test and in process memory
otherwise.
"""

import threading
import time
import logging
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.config import settings
from ..models.exceptions import FreeScanLimitExceeded
from ..services.redis import get_client

logger = logging.getLogger(__name__)


class FreeScanQuota:
    """Per-session counter of anonymous scans.

    `consume` is called only after a scan succeeded, so a failed analysis
    does not cost the visitor one of their free scans.
    """

    def __init__(self, limit: int = 3, window_seconds: int = 86400, use_redis: Optional[bool] = None,
                 key_prefix: str = "free_scan"):
        self.limit = limit
        self.window_seconds = window_seconds
        self.use_redis = settings.use_redis if use_redis is None else use_redis
        self.key_prefix = key_prefix
        self._counts: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}:{session_id}"

    def used(self, session_id: str) -> int:
        if self.use_redis:
            value = get_client().get(self._key(session_id))
            return int(value or 0)
        with self._lock:
            count, expires_at = self._counts.get(session_id, (0, 0.0))
            if expires_at and expires_at <= time.time():
                self._counts.pop(session_id, None)
                return 0
            return count

    def remaining(self, session_id: str) -> int:
        return max(0, self.limit - self.used(session_id))

    def check(self, session_id: str) -> int:
        """Raise `FreeScanLimitExceeded` when no scans are left, else return how many are."""
        remaining = self.remaining(session_id)
        if remaining <= 0:
            raise FreeScanLimitExceeded(self.limit)
        return remaining

    def consume(self, session_id: str) -> int:
        """Record one scan and return the scans left afterwards."""
        if self.use_redis:
            client = get_client()
            key = self._key(session_id)
            pipe = client.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds, nx=True)
            count = int(pipe.execute()[0])
        else:
            with self._lock:
                count, expires_at = self._counts.get(session_id, (0, 0.0))
                now = time.time()
                if not expires_at or expires_at <= now:
                    count, expires_at = 0, now + self.window_seconds
                count += 1
                self._counts[session_id] = (count, expires_at)
        if count > self.limit:
            raise FreeScanLimitExceeded(self.limit)
        return max(0, self.limit - count)

    def reset(self, session_id: Optional[str] = None) -> None:
        if self.use_redis:
            if session_id:
                get_client().delete(self._key(session_id))
            return
        with self._lock:
            if session_id:
                self._counts.pop(session_id, None)
            else:
                self._counts.clear()


class RedisRateLimiter:
    """Sliding-window limiter on a Redis sorted set per client."""

    def __init__(self, requests_per_minute: int = 100, key_prefix: str = "rate_limit"):
        self.requests_per_minute = requests_per_minute
        self.key_prefix = key_prefix
        self.window_seconds = 60

    def check_rate_limit(self, identifier: str) -> Tuple[bool, int, int]:
        """Returns (allowed, remaining, reset_timestamp)."""
        key = f"{self.key_prefix}:{identifier}"
        now = time.time()
        try:
            client = get_client()
            pipe = client.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            request_count = pipe.execute()[1]

            if request_count >= self.requests_per_minute:
                oldest = client.zrange(key, 0, 0, withscores=True)
                reset_time = int(oldest[0][1]) + self.window_seconds if oldest else int(now) + self.window_seconds
                return False, 0, reset_time

            client.zadd(key, {f"{now:.6f}": now})
            client.expire(key, self.window_seconds + 10)
            return True, max(0, self.requests_per_minute - request_count - 1), int(now) + self.window_seconds
        except RedisError as e:
            # Fail open: a Redis outage must not take the API down
            logger.error(f"Rate limiter error: {e}")
            return True, -1, 0


class MemoryRateLimiter:
    """Same sliding window kept in a dict, for dev and test."""

    def __init__(self, requests_per_minute: int = 100, max_clients: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.window_seconds = 60
        self.max_clients = max_clients
        self.clients: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def check_rate_limit(self, identifier: str) -> Tuple[bool, int, int]:
        now = time.time()
        cutoff = now - self.window_seconds
        with self._lock:
            if len(self.clients) > self.max_clients:
                self.clients = {k: v for k, v in self.clients.items() if v and v[-1] > cutoff}
            hits = [t for t in self.clients.get(identifier, []) if t > cutoff]
            if len(hits) >= self.requests_per_minute:
                self.clients[identifier] = hits
                return False, 0, int(hits[0]) + self.window_seconds
            hits.append(now)
            self.clients[identifier] = hits
            return True, self.requests_per_minute - len(hits), int(now) + self.window_seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client requests-per-minute limit with a 429 and `Retry-After`."""

    EXEMPT_PATHS = ("/healthz", "/docs", "/openapi.json", "/static")

    def __init__(self, app: ASGIApp, requests_per_minute: int = 100, use_redis: Optional[bool] = None):
        super().__init__(app)
        use_redis = settings.use_redis if use_redis is None else use_redis
        if use_redis:
            self.limiter = RedisRateLimiter(requests_per_minute=requests_per_minute)
            logger.info("Using Redis-based rate limiter")
        else:
            self.limiter = MemoryRateLimiter(requests_per_minute=requests_per_minute)
            logger.info("Using memory-based rate limiter")

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(self.EXEMPT_PATHS):
            return await call_next(request)

        allowed, remaining, reset_time = self.limiter.check_rate_limit(self._get_identifier(request))
        limit = self.limiter.requests_per_minute
        if not allowed:
            retry_after = max(1, reset_time - int(time.time()))
            return JSONResponse(
                content={
                    "error": "RateLimitExceeded",
                    "message": f"Rate limit of {limit} requests per minute exceeded",
                    "retry_after_seconds": retry_after,
                },
                status_code=429,
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset_time),
                    "Retry-After": str(retry_after),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        if remaining >= 0:
            response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    def _get_identifier(self, request: Request) -> str:
        # Runs before authentication, so clients are keyed by address only
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return f"ip:{forwarded_for.split(',')[0].strip()}"
        if request.client:
            return f"ip:{request.client.host}"
        return "ip:unknown"


free_scan_quota = FreeScanQuota(
    limit=settings.free_scan_limit,
    window_seconds=settings.free_scan_window_seconds,
)
