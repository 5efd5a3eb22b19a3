"""HTTP middleware: per-action rate limits, request logging, security headers."""

import hashlib
import logging
import re
import time
import uuid
from dataclasses import dataclass

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

import redis.asyncio as redis

from boda_backend.config import settings
from boda_backend.core.exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


@dataclass(frozen=True)
class RateBudget:
    action: str
    limit: int
    window_seconds: int


# (method, path pattern, action, limit, window)
_ACTION_RULES = [
    ("POST", re.compile(r"/bookings/?$"), "create_booking", 10, 3600),
    ("POST", re.compile(r"/bookings/[^/]+/payments$"), "record_payment", 30, 3600),
]


def budget_for(method: str, path: str, default_per_minute: int) -> RateBudget:
    """Pick the budget a request is counted against."""
    for rule_method, pattern, action, limit, window in _ACTION_RULES:
        if method == rule_method and pattern.search(path):
            return RateBudget(action, limit, window)
    return RateBudget("default", default_per_minute, 60)


def caller_key(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if auth:
        return "token:" + hashlib.sha256(auth.encode()).hexdigest()[:32]
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return "ip:" + forwarded.split(",")[0].strip()
    return "ip:" + (request.client.host if request.client else "unknown")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window limits kept in Redis sorted sets, one window per caller and action.

    When Redis cannot be reached requests are let through and a warning is logged.
    """

    def __init__(self, app, requests_per_minute: int = 100, redis_url: str | None = None):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.redis_url = redis_url or settings.redis_url
        self._redis: redis.Redis | None = None

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def _hit(self, key: str, window_seconds: int, now: float) -> int:
        """Record one hit and return how many hits preceded it in the window."""
        async with self._client().pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {uuid.uuid4().hex: now})
            pipe.expire(key, window_seconds)
            _, count, _, _ = await pipe.execute()
        return count

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        budget = budget_for(request.method, request.url.path, self.requests_per_minute)
        key = f"rate_limit:{budget.action}:{caller_key(request)}"
        now = time.time()

        try:
            count = await self._hit(key, budget.window_seconds, now)
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing {budget.action}: {e}")
            return await call_next(request)

        headers = {
            "X-RateLimit-Limit": str(budget.limit),
            "X-RateLimit-Remaining": str(max(0, budget.limit - count - 1)),
            "X-RateLimit-Reset": str(int(now) + budget.window_seconds),
        }
        if count >= budget.limit:
            logger.info(f"rate_limited action={budget.action} key={key} count={count}")
            headers["Retry-After"] = str(budget.window_seconds)
            headers["X-RateLimit-Remaining"] = "0"
            return JSONResponse(
                status_code=429, content=RateLimitExceeded().to_dict(), headers=headers
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome."""

    slow_threshold = 1.0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        line = f"{request.method} {request.url.path} {response.status_code} {elapsed:.3f}s rid={request_id}"
        if elapsed > self.slow_threshold:
            logger.warning(f"slow_request {line}")
        else:
            logger.info(line)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
