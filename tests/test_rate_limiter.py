"""
Tests for the slowapi rate limiting setup.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from meseca.middleware import configure_rate_limiting, create_limiter, rate_limit_for


@pytest.mark.parametrize("window_ms,max_requests,expected", [
    (60_000, 60, "60/60 seconds"),
    (1_500, 5, "5/2 seconds"),
    (10, 1, "1/1 seconds"),
])
def test_rate_limit_for(window_ms, max_requests, expected):
    assert rate_limit_for(window_ms, max_requests) == expected


class TestRateLimiting:
    """Test counting and blocking through the middleware."""

    @pytest.fixture
    def make_app(self):
        def factory(max_requests: int = 3) -> FastAPI:
            app = FastAPI()
            configure_rate_limiting(app, create_limiter(window_ms=60_000, max_requests=max_requests))

            @app.get("/ping")
            async def ping():
                return {"pong": True}

            @app.get("/other")
            async def other():
                return {"other": True}

            return app

        return factory

    def test_allows_up_to_limit(self, make_app):
        client = TestClient(make_app())

        responses = [client.get("/ping") for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 200]
        assert [r.headers["x-ratelimit-remaining"] for r in responses] == ["2", "1", "0"]
        assert responses[0].headers["x-ratelimit-limit"] == "3"

    def test_blocks_over_limit(self, make_app):
        client = TestClient(make_app(max_requests=1))

        client.get("/ping")
        blocked = client.get("/ping")

        assert blocked.status_code == 429
        assert blocked.json() == {"error": "Too many requests, please try again later."}
        assert "retry-after" in blocked.headers

    def test_limiter_is_per_app(self, make_app):
        first = TestClient(make_app(max_requests=1))
        second = TestClient(make_app(max_requests=1))

        first.get("/ping")

        assert second.get("/ping").status_code == 200

    def test_reset_clears_counters(self, make_app):
        app = make_app(max_requests=1)
        client = TestClient(app)
        client.get("/ping")
        assert client.get("/ping").status_code == 429

        app.state.limiter.reset()

        assert client.get("/ping").status_code == 200
