import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from components.ratelimiter.contracts import Policy
from components.ratelimiter.middleware import RateLimiterMiddleware
from components.ratelimiter.service import RateLimiterService
from components.ratelimiter.store import InMemoryStore

@pytest.mark.anyio
async def test_middleware_basic_flow():
    app = FastAPI()

    policy = Policy(name="per_ip", limit=2, window_seconds=60, path_pattern=r"^/echo$", methods=["GET"])

    # Deterministic clock for service used by middleware
    t = {"now": 0.0}
    def now():
        return t["now"]
    svc = RateLimiterService(store=InMemoryStore(), now=now)

    app.add_middleware(
        RateLimiterMiddleware,
        policies=[policy],
        service=svc,
        skip_paths=[r"^/health$"],
    )

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/echo")
    async def echo():
        return {"ok": True}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        # health should bypass
        for _ in range(5):
            r = await ac.get("/health")
            assert r.status_code == 200
            assert "X-RateLimit-Limit" not in r.headers

        # allow 2, then deny
        r1 = await ac.get("/echo")
        assert r1.status_code == 200
        assert r1.headers["X-RateLimit-Limit"] == "2"
        assert r1.headers["X-RateLimit-Remaining"] == "1"
        r2 = await ac.get("/echo")
        assert r2.status_code == 200
        r3 = await ac.get("/echo")
        assert r3.status_code == 429
        assert r3.text == "Too many requests, please try again later."
        assert r3.headers["Retry-After"] == "60"

        # advance past the window → allow again
        t["now"] += 60.0
        r4 = await ac.get("/echo")
        assert r4.status_code == 200

@pytest.fixture
def anyio_backend():
    return "asyncio"
