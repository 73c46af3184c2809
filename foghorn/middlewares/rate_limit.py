import math
import time
from typing import Dict

from fastapi import Request
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from foghorn.platform.config import settings

EXEMPT_PATHS = {"/", "/health"}

# In-memory counters keyed by "<client>:<bucket>"
_hits: Dict[str, int] = {}
_last_cleanup = time.time()


def reset_rate_limiter() -> None:
    """Clear all in-memory rate limit state."""
    global _last_cleanup
    _hits.clear()
    _last_cleanup = time.time()


def _cleanup(now: float, window: int) -> None:
    global _last_cleanup
    if now - _last_cleanup < window:
        return

    current_bucket = int(now // window)
    for key in list(_hits):
        if int(key.rsplit(":", 1)[1]) < current_bucket:
            del _hits[key]
    _last_cleanup = now


def client_identity(request: Request) -> str:
    forwarded = request.headers.get("cf-connecting-ip") or request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _too_many_requests(retry_after: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "status_code": 429,
            "status": "error",
            "message": "Too many requests. Please try again later.",
            "data": {},
        },
        headers={"Retry-After": str(max(retry_after, 1))},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window limiter: ``RATE_LIMIT_MAX_REQUESTS`` per client per
    ``RATE_LIMIT_WINDOW_SECONDS`` bucket.
    """

    def __init__(self, app):
        super().__init__(app)
        self.redis = None

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        window = settings.RATE_LIMIT_WINDOW_SECONDS
        limit = settings.RATE_LIMIT_MAX_REQUESTS
        now = time.time()
        bucket = int(now // window)
        retry_after = math.ceil((bucket + 1) * window - now)
        client = client_identity(request)

        # ---------------------------
        # In-memory store (single process, tests)
        # ---------------------------
        if settings.FORCE_IN_MEMORY_RATE_LIMITER:
            _cleanup(now, window)
            key = f"{client}:{bucket}"
            current = _hits.get(key, 0)
            if current >= limit:
                return _too_many_requests(retry_after)
            _hits[key] = current + 1
            return await call_next(request)

        # ---------------------------
        # PRODUCTION: Redis store
        # ---------------------------
        if self.redis is None:
            self.redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)

        key = f"rl:{client}:{bucket}"
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, window)
        if count > limit:
            return _too_many_requests(retry_after)

        return await call_next(request)
