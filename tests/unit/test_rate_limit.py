"""Tests for the Redis sliding-window rate limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from even.middleware.rate_limit import RateLimitMiddleware, caller_identifier


def _redis_returning(count: int) -> MagicMock:
    """Fake redis whose pipeline reports ``count`` requests in the window."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


def _client(redis_getter, limit: int = 100) -> TestClient:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, redis_getter=redis_getter, limit=limit, window=900)

    @app.get("/api/reviews/me")
    async def my_reviews():
        return []

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return TestClient(app)


class TestRateLimitMiddleware:
    def test_under_limit_passes_with_headers(self):
        client = _client(lambda: _redis_returning(5))

        response = client.get("/api/reviews/me")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "95"

    def test_over_limit_returns_429(self):
        client = _client(lambda: _redis_returning(101))

        response = client.get("/api/reviews/me")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        assert response.json()["error"] == "rate_limit_exceeded"

    def test_no_redis_connection_skips_limit(self):
        def not_connected():
            raise RuntimeError("Redis is not connected")

        client = _client(not_connected)

        response = client.get("/api/reviews/me")

        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers

    def test_redis_error_mid_request_fails_open(self):
        redis = _redis_returning(0)
        redis.pipeline.return_value.execute = AsyncMock(side_effect=ConnectionError("reset"))
        client = _client(lambda: redis)

        response = client.get("/api/reviews/me")

        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers

    def test_health_is_not_limited(self):
        redis = _redis_returning(10_000)
        client = _client(lambda: redis)

        assert client.get("/health").status_code == 200
        redis.pipeline.assert_not_called()


class TestCallerIdentifier:
    def _request(self, auth: str | None = None, host: str = "10.0.0.1"):
        request = MagicMock()
        request.headers = {"Authorization": auth} if auth else {}
        request.client = MagicMock(host=host)
        return request

    def test_uses_token_prefix(self):
        request = self._request(auth="Bearer abcdefghijklmnopqrstuvwxyz")
        assert caller_identifier(request) == "abcdefghijklmnop"

    def test_falls_back_to_client_host(self):
        assert caller_identifier(self._request()) == "10.0.0.1"

    @pytest.mark.parametrize("auth", ["Bearer short", "Basic abcdefghijklmnopqrstuvwxyz"])
    def test_short_or_non_bearer_uses_host(self, auth):
        assert caller_identifier(self._request(auth=auth)) == "10.0.0.1"
