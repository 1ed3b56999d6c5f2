"""Health endpoint and request id header."""
from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("database") == "ok"
    assert j.get("record_store") == "sql"
    assert j.get("analyzer_configured") is False


def test_request_id_header(client: TestClient):
    r = client.get("/health")
    assert r.headers.get("X-Request-ID")


def test_unknown_route_returns_error_envelope(client: TestClient):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    j = r.json()
    assert j["error"] == "Not Found"
    assert j["status_code"] == 404
    assert j["request_id"] == r.headers["X-Request-ID"]


def test_wrong_method_returns_error_envelope(client: TestClient):
    r = client.put("/health")
    assert r.status_code == 405
    assert r.json()["error"] == "Method Not Allowed"
    assert r.json()["status_code"] == 405


def test_unhandled_error_returns_envelope_and_is_logged(client: TestClient, auth_headers: dict, monkeypatch):
    from sqlmodel import Session, select

    from app.core.database import engine
    from app.main import app
    from app.models import ErrorLog

    def boom(*args, **kwargs):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(app.state.record_store, "list_for_owner", boom)
    # Lifespan yeniden çalışmasın diye context manager kullanılmıyor
    raw = TestClient(app, raise_server_exceptions=False)
    r = raw.get("/api/images/my-images", headers=auth_headers)
    assert r.status_code == 500
    assert r.json()["error"] == "Unexpected server error."
    with Session(engine) as db:
        rows = db.exec(select(ErrorLog)).all()
    assert len(rows) == 1
    assert rows[0].error_type == "RuntimeError"
    assert rows[0].endpoint == "/api/images/my-images"
    assert rows[0].user_id is not None
