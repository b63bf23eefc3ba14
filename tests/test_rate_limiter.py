import asyncio

import pytest
import redis
from fastapi import HTTPException
from starlette.requests import Request

from app import rate_limiter


class CountingRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}

    def pipeline(self):
        return CountingPipeline(self)

    def expire(self, key, seconds):
        self.ttls[key] = seconds


class CountingPipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def incr(self, key):
        self.ops.append(("incr", key))

    def ttl(self, key):
        self.ops.append(("ttl", key))

    def execute(self):
        results = []
        for op, key in self.ops:
            if op == "incr":
                self.client.counts[key] = self.client.counts.get(key, 0) + 1
                results.append(self.client.counts[key])
            else:
                results.append(self.client.ttls.get(key, -1))
        return results


def make_request(ip="10.0.0.1"):
    return Request({"type": "http", "method": "POST", "path": "/", "headers": [(b"x-forwarded-for", ip.encode())], "client": ("127.0.0.1", 1)})


def test_check_rate_limit_sets_window():
    client = CountingRedis()
    assert rate_limiter.check_rate_limit("k", 2, 60, client) == (True, 1, 60)
    assert rate_limiter.check_rate_limit("k", 2, 60, client) == (True, 2, 60)
    assert rate_limiter.check_rate_limit("k", 2, 60, client)[0] is False


def test_client_ip_prefers_forwarded_header():
    assert rate_limiter.client_ip(make_request("203.0.113.9, 10.0.0.1")) == "203.0.113.9"


def test_limit_exceeded_returns_429(monkeypatch):
    client = CountingRedis()
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: client)
    limiter = rate_limiter.create_rate_limiter(1, 60, "register")

    asyncio.run(limiter(make_request()))
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(limiter(make_request()))

    assert exc_info.value.status_code == 429
    assert exc_info.value.detail["type"] == "rate_limited"
    assert exc_info.value.headers["Retry-After"] == "60"


def test_fails_open_without_redis(monkeypatch):
    def unavailable():
        raise redis.ConnectionError("down")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)
    limiter = rate_limiter.create_rate_limiter(1, 60, "register")
    for _ in range(3):
        assert asyncio.run(limiter(make_request())) is None
