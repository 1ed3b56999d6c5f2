"""Rate limit: limit aşılınca 429 ve ortak hata zarfı."""
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from app.core.rate_limit import client_ip, limiter
from app.main import _rate_limit_handler


def _limited_app() -> FastAPI:
    mini = FastAPI()
    mini.state.limiter = limiter
    mini.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    @mini.get("/limited")
    @limiter.limit("3/minute")
    def limited(request: Request):
        return {"ok": True}

    return mini


def test_limited_route_200_then_429():
    with TestClient(_limited_app()) as c:
        headers = {"X-Forwarded-For": "203.0.113.7"}
        for i in range(3):
            r = c.get("/limited", headers=headers)
            assert r.status_code == 200, f"Request {i+1} should be 200"
            assert r.json() == {"ok": True}
        r = c.get("/limited", headers=headers)
        assert r.status_code == 429
        j = r.json()
        assert j.get("error") == "Too many requests. Please wait a minute."
        assert j.get("status_code") == 429
        # Farklı istemci IP'si ayrı sayılır
        assert c.get("/limited", headers={"X-Forwarded-For": "203.0.113.8"}).status_code == 200


def test_client_ip_prefers_forwarded_header():
    class FakeClient:
        host = "10.0.0.1"

    class FakeRequest:
        headers = {"x-forwarded-for": "198.51.100.1, 10.0.0.2"}
        client = FakeClient()

    assert client_ip(FakeRequest()) == "198.51.100.1"
    FakeRequest.headers = {}
    assert client_ip(FakeRequest()) == "10.0.0.1"
