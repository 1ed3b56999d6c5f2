"""Pytest fixtures: test client, test DB (in-memory SQLite), senkron analiz işçisi."""
import os
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient

# Test ortamında in-memory SQLite (app import edilmeden önce set edilmeli)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
# Gerçek OpenAI anahtarı testlere sızmasın
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_API_KEYS"] = ""
os.environ.setdefault("RECORD_STORE", "sql")
# Rate limit yüksek olsun ki tüm testler geçebilsin
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_REGISTER_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_UPLOAD_PER_MINUTE", "1000")
# Periyodik tarama kapalı; analiz testlerde senkron tetiklenir
os.environ.setdefault("ANALYSIS_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="alwaycare-uploads-"))

from sqlmodel import SQLModel  # noqa: E402

from app.core.database import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.analysis import AnalysisResult, DetectedObject  # noqa: E402
from app.services.analysis_worker import AnalysisWorker  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class ImmediateThread:
    """thread_factory yerine: start() hedefi aynı thread'de hemen çalıştırır."""

    def __init__(self, worker: AnalysisWorker, target, args: tuple[int, ...]) -> None:
        self._worker = worker
        self._target = target
        self._args = args
        self.started = False

    def start(self) -> None:
        self.started = True
        record_id = self._args[0]
        assert self._worker.is_running(record_id)
        self._target(*self._args)
        assert not self._worker.is_running(record_id)


class StubAnalyzer:
    """Sabit sonuç döner; raises verilirse o hatayı fırlatır."""

    def __init__(self, result: AnalysisResult | None = None, raises: Exception | None = None) -> None:
        self.result = result or AnalysisResult(
            risk_level="low",
            risk_description="Loose cable near the desk.",
            detected_objects=[DetectedObject(name="cable", confidence=0.82)],
            confidence_scores={"cable": {"confidence": 0.82}},
        )
        self.raises = raises
        self.calls: list[tuple[int, str]] = []

    def analyze(self, content: bytes, mime: str) -> AnalysisResult:
        self.calls.append((len(content), mime))
        if self.raises is not None:
            raise self.raises
        return self.result


def immediate_worker(store, analyzer, storage, **kwargs) -> AnalysisWorker:
    worker = AnalysisWorker(store, analyzer, storage, worker_id="test-worker", **kwargs)
    worker.thread_factory = lambda target, args: ImmediateThread(worker, target, args)
    return worker


@pytest.fixture(scope="function")
def client():
    """TestClient; her testte tablolar sıfırlanır, lifespan servisleri kurar."""
    SQLModel.metadata.drop_all(engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def analyzer(client: TestClient) -> StubAnalyzer:
    """Uygulamanın işçisini senkron işçi + stub analizörle değiştirir."""
    stub = StubAnalyzer()
    app.state.analysis_worker = immediate_worker(app.state.record_store, stub, app.state.file_storage)
    return stub


def register_and_login(client: TestClient, email: str | None = None, password: str = "test123456") -> dict:
    email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
    client.post(
        "/auth/register",
        data={"email": email, "password": password, "full_name": "Test User"},
    )
    r = client.post("/auth/login", data={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    """Yeni kayıtlı kullanıcı token'ı ile Authorization header döner."""
    return register_and_login(client, "test@example.com")


@pytest.fixture
def other_headers(client: TestClient) -> dict:
    return register_and_login(client, "other@example.com")


def upload(client: TestClient, headers: dict, name: str = "room.png", content: bytes = PNG_BYTES):
    return client.post(
        "/api/images/upload",
        files={"image": (name, content, "image/png")},
        headers=headers,
    )
