"""Redis-based sliding window rate limiting middleware."""

import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from even.logging_config import get_logger

logger = get_logger(__name__)

SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# 100 requests per 15 minutes per caller and path
DEFAULT_LIMIT = 100
DEFAULT_WINDOW = 15 * 60  # seconds


def caller_identifier(request: Request) -> str:
    """Bearer token prefix when present, otherwise the client address."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer ") and len(auth_header) > 23:
        return auth_header[7:23]
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis sliding window rate limiter (ZADD + ZREMRANGEBYSCORE)."""

    def __init__(self, app, redis_getter, limit: int = DEFAULT_LIMIT, window: int = DEFAULT_WINDOW):
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limit = limit
        self._window = window

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        try:
            redis = self._redis_getter()
        except RuntimeError:
            # No Redis connection: limiting is off
            return await call_next(request)

        identifier = caller_identifier(request)
        key = f"ratelimit:{identifier}:{request.url.path}"

        try:
            now = time.time()
            window_start = now - self._window

            pipe = redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self._window + 1)
            results = await pipe.execute()
        except Exception as e:
            # Redis unavailable: let the request through
            logger.warning("rate_limit_redis_error", error=str(e))
            return await call_next(request)

        request_count = results[2]
        if request_count > self._limit:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=request.url.path,
                count=request_count,
                limit=self._limit,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "detail": "Too many requests, please try again later.",
                    "retry_after": self._window,
                },
                headers={"Retry-After": str(self._window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._limit - request_count))
        return response
