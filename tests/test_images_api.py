"""Görsel API: yükleme, sahibin listesi, detay, silme; camelCase yanıt alanları."""
from pathlib import Path

from fastapi.testclient import TestClient

from app.main import app
from conftest import PNG_BYTES, StubAnalyzer, immediate_worker, upload


def test_upload_requires_auth(client: TestClient):
    r = upload(client, {})
    assert r.status_code == 401
    assert r.json().get("error") == "Access token required."


def test_upload_creates_pending_record_then_completes(client: TestClient, auth_headers: dict, analyzer: StubAnalyzer):
    r = upload(client, auth_headers, "Kitchen.png")
    assert r.status_code == 201
    j = r.json()
    assert j["message"] == "Image uploaded successfully"
    assert j["originalName"] == "Kitchen.png"
    assert j["status"] == "pending"
    assert j["filename"].endswith(".png")
    assert "file_path" not in j and "filePath" not in j

    r = client.get(f"/api/images/{j['imageId']}", headers=auth_headers)
    assert r.status_code == 200
    image = r.json()["image"]
    assert image["status"] == "completed"
    assert image["riskLevel"] == "low"
    assert image["originalFilename"] == "Kitchen.png"
    assert image["detectedObjects"] == [{"name": "cable", "confidence": 0.82}]
    assert image["confidenceScores"] == {"cable": {"confidence": 0.82}}
    assert image["analyzedAt"]
    assert len(analyzer.calls) == 1


def test_analyzer_error_marks_upload_failed(client: TestClient, auth_headers: dict):
    app.state.analysis_worker = immediate_worker(
        app.state.record_store, StubAnalyzer(raises=RuntimeError("vision timeout")), app.state.file_storage
    )
    image_id = upload(client, auth_headers).json()["imageId"]
    image = client.get(f"/api/images/{image_id}", headers=auth_headers).json()["image"]
    assert image["status"] == "failed"
    assert image["riskLevel"] is None
    assert image["detectedObjects"] is None


def test_upload_rejects_non_image(client: TestClient, auth_headers: dict, analyzer: StubAnalyzer):
    r = upload(client, auth_headers, "notes.txt", b"hello")
    assert r.status_code == 400
    assert r.json()["error"] == "Only image files are allowed!"
    assert client.get("/api/images/my-images", headers=auth_headers).json()["pagination"]["total"] == 0


def test_upload_rejects_non_image_content_type(
    client: TestClient, auth_headers: dict, analyzer: StubAnalyzer
):
    r = client.post(
        "/api/images/upload",
        files={"image": ("room.png", b"#!/bin/sh\necho hi\n", "text/x-shellscript")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Only image files are allowed!"
    assert analyzer.calls == []
    assert client.get("/api/images/my-images", headers=auth_headers).json()["pagination"]["total"] == 0


def test_upload_rejects_empty_file(client: TestClient, auth_headers: dict, analyzer: StubAnalyzer):
    r = upload(client, auth_headers, "empty.png", b"")
    assert r.status_code == 400


def test_upload_without_file(client: TestClient, auth_headers: dict):
    r = client.post("/api/images/upload", data={"note": "x"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "No image file provided"


def test_my_images_lists_only_own_records(
    client: TestClient, auth_headers: dict, other_headers: dict, analyzer: StubAnalyzer
):
    first = upload(client, auth_headers, "a.png").json()["imageId"]
    second = upload(client, auth_headers, "b.png").json()["imageId"]
    upload(client, other_headers, "c.png")
    r = client.get("/api/images/my-images", headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert [img["id"] for img in j["images"]] == [second, first]
    assert j["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}


def test_my_images_paging_validation(client: TestClient, auth_headers: dict):
    r = client.get("/api/images/my-images?page=0", headers=auth_headers)
    assert r.status_code == 422
    assert r.json()["status_code"] == 422


def test_other_owner_gets_not_found(client: TestClient, auth_headers: dict, other_headers: dict, analyzer: StubAnalyzer):
    image_id = upload(client, auth_headers).json()["imageId"]
    r = client.get(f"/api/images/{image_id}", headers=other_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Image not found"
    r = client.delete(f"/api/images/{image_id}", headers=other_headers)
    assert r.status_code == 404
    assert client.get(f"/api/images/{image_id}", headers=auth_headers).status_code == 200


def test_missing_image_is_not_found(client: TestClient, auth_headers: dict):
    r = client.get("/api/images/9999", headers=auth_headers)
    assert r.status_code == 404
    assert "request_id" in r.json()


def test_delete_removes_record_and_file(client: TestClient, auth_headers: dict, analyzer: StubAnalyzer):
    image_id = upload(client, auth_headers).json()["imageId"]
    record = app.state.record_store.load(image_id)
    assert Path(record.file_path).is_file()

    r = client.delete(f"/api/images/{image_id}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Image deleted successfully"}
    assert not Path(record.file_path).exists()
    assert client.get(f"/api/images/{image_id}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/images/{image_id}", headers=auth_headers).status_code == 404


def test_upload_with_analysis_on_upload_disabled_stays_pending(
    client: TestClient, auth_headers: dict, analyzer: StubAnalyzer, monkeypatch
):
    from app.core.config import settings

    monkeypatch.setattr(settings, "analysis_on_upload", False)
    image_id = upload(client, auth_headers, content=PNG_BYTES).json()["imageId"]
    assert client.get(f"/api/images/{image_id}", headers=auth_headers).json()["image"]["status"] == "pending"
    assert analyzer.calls == []


def test_upload_succeeds_when_analysis_thread_cannot_start(
    client: TestClient, auth_headers: dict, analyzer: StubAnalyzer
):
    class UnstartableThread:
        def __init__(self, target, args) -> None:
            self.target = target

        def start(self) -> None:
            raise RuntimeError("can't start new thread")

    worker = app.state.analysis_worker
    worker.thread_factory = UnstartableThread
    r = upload(client, auth_headers)
    assert r.status_code == 201
    image_id = r.json()["imageId"]
    assert r.json()["status"] == "pending"
    assert not worker.is_running(image_id)

    assert client.post("/api/analysis/sweep", headers=auth_headers).json() == {"processed": 1}
    assert client.get(f"/api/images/{image_id}", headers=auth_headers).json()["image"]["status"] == "completed"
