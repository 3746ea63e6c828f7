"""
Tests for fixed-window rate limiting.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mdserver.config.server_config import RateLimitConfig
from mdserver.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)


def build_app(config: RateLimitConfig, limiter=None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestFixedWindowRateLimiter:
    """Tests for the in-memory limiter."""

    def test_allows_up_to_limit(self, limiter):
        decisions = [limiter.check("client") for _ in range(3)]

        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    def test_blocks_over_limit(self, limiter):
        for _ in range(3):
            limiter.check("client")

        decision = limiter.check("client")

        assert decision.allowed is False
        assert decision.remaining == 0
        assert limiter.stats()["blocked"] == 1

    def test_clients_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("a")
        assert limiter.check("b").allowed is True

    def test_window_resets(self, limiter, clock):
        for _ in range(4):
            limiter.check("client")

        clock.now += 60

        assert limiter.check("client").allowed is True

    def test_reset_after_counts_down(self, limiter, clock):
        limiter.check("client")
        clock.now += 20
        assert limiter.check("client").reset_after == 40

    def test_expired_clients_are_purged(self, limiter, clock):
        limiter.check("a")
        clock.now += 61
        limiter.check("b")

        assert limiter.stats()["clients"] == 1

    def test_reset(self, limiter):
        limiter.check("a")
        limiter.reset()
        assert limiter.stats()["clients"] == 0


class TestRateLimitMiddleware:
    """Tests for the HTTP middleware."""

    def test_headers_on_allowed_response(self):
        client = TestClient(build_app(RateLimitConfig(max_requests=5, window_seconds=60)))

        response = client.get("/ping")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_429_over_limit(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        client = TestClient(build_app(RateLimitConfig(), limiter=limiter))

        client.get("/ping")
        client.get("/ping")
        response = client.get("/ping")

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "RATE_LIMITED"
        assert response.headers["Retry-After"] == "61"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_disabled(self):
        client = TestClient(build_app(RateLimitConfig(enabled=False, max_requests=1)))

        responses = [client.get("/ping") for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)
        assert "X-RateLimit-Limit" not in responses[0].headers
