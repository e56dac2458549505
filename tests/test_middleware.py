"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: Real Redis is never available in tests, so the rate limiter is
exercised against a tiny in-memory stand-in patched in where the
middleware looks Redis up.
"""

import pytest


class FakeRedis:
    """Counts INCRs per key, ignoring the minute suffix so tests can't
    straddle a window boundary."""

    def __init__(self):
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        bucket = key.rsplit(":", 1)[0]
        self.counts[bucket] = self.counts.get(bucket, 0) + 1
        return self.counts[bucket]

    async def expire(self, key: str, seconds: int) -> None:
        self.expiries[key] = seconds


@pytest.fixture()
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr("eisenhower.middleware.rate_limit.get_redis", lambda: redis)
    return redis


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_security_headers_on_error_pages(client):
    r = await client.get("/api/users")
    assert r.status_code == 401
    assert r.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert r1.headers["X-Request-ID"]
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_untrusted_request_id_replaced(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "a b<script>"})
    assert r.headers["X-Request-ID"] != "a b<script>"
    assert len(r.headers["X-Request-ID"]) == 32


@pytest.mark.asyncio
async def test_error_page_shows_request_id(client):
    r = await client.get(
        "/topics", headers={"Accept": "text/html", "X-Request-ID": "trace-777"}
    )
    assert r.status_code == 401
    assert "<code>trace-777</code>" in r.text


@pytest.mark.asyncio
async def test_content_security_policy_on_pages_only(client):
    r = await client.get("/", headers={"Accept": "text/html"})
    policy = r.headers["Content-Security-Policy"]
    assert "form-action 'self'" in policy
    assert "frame-ancestors 'none'" in policy

    r = await client.get("/api/health")
    assert "Content-Security-Policy" not in r.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client, fake_redis):
    r = await client.get("/api/health")
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"


@pytest.mark.asyncio
async def test_identity_endpoints_have_stricter_limit(client, fake_redis):
    for _ in range(10):
        r = await client.post("/auth/token")
        assert r.status_code == 401

    r = await client.post("/auth/token")
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"
    assert r.json()["status"] == "Too Many Requests"

    # The general bucket is counted separately.
    r = await client.get("/api/health")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis(client):
    r = await client.get("/api/health")
    assert "X-RateLimit-Limit" not in r.headers
