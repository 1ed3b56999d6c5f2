"""İstemci normalizasyonu: snake/camel/eski anahtarlar aynı görünüme çevrilir."""
from app.client.normalize import format_confidence, normalize_image, normalize_image_list, normalize_stats


def test_camel_and_snake_payloads_match():
    camel = normalize_image(
        {
            "id": 3,
            "originalFilename": "a.png",
            "uploadTimestamp": "2024-05-01T10:00:00",
            "riskLevel": "low",
            "detectedObjects": [{"name": "cable", "confidence": 0.5}],
        }
    )
    snake = normalize_image(
        {
            "id": 3,
            "original_filename": "a.png",
            "upload_timestamp": "2024-05-01T10:00:00",
            "risk_level": "low",
            "detected_objects": [{"name": "cable", "confidence": 0.5}],
        }
    )
    assert camel == snake
    assert camel.risk_level == "low"
    assert camel.detected_objects[0].name == "cable"


def test_legacy_keys_and_defaults():
    view = normalize_image({"image_id": 9, "originalName": "b.jpg", "analysis_status": "pending", "detected_objects": None})
    assert view.id == 9
    assert view.original_filename == "b.jpg"
    assert view.status == "pending"
    assert view.detected_objects == []
    assert view.confidence_scores is None


def test_unparseable_timestamp_becomes_none():
    assert normalize_image({"id": 1, "uploadTimestamp": "yesterday"}).upload_timestamp is None


def test_object_without_name_is_unknown():
    view = normalize_image({"detectedObjects": [{"confidence": 0.2}, {"name": "", "confidence": 0.3}]})
    assert [o.name for o in view.detected_objects] == ["Unknown", "Unknown"]


def test_image_list_accepts_images_or_analyses():
    assert [v.id for v in normalize_image_list({"images": [{"id": 1}, {"id": 2}]})] == [1, 2]
    assert [v.id for v in normalize_image_list({"analyses": [{"id": 5}]})] == [5]
    assert normalize_image_list({}) == []
    assert normalize_image_list(None) == []


def test_stats_totals_from_either_convention():
    camel = normalize_stats(
        {
            "statusDistribution": [{"status": "completed", "count": 4}, {"status": "pending", "count": 2}],
            "riskDistribution": [{"riskLevel": "none", "count": 1}, {"riskLevel": "high", "count": 3}],
        }
    )
    legacy = normalize_stats(
        {
            "status_distribution": [{"analysis_status": "completed", "count": 4}, {"analysis_status": "pending", "count": 2}],
            "risk_distribution": [{"level": "none", "count": 1}, {"level": "high", "count": 3}],
        }
    )
    for view in (camel, legacy):
        totals = view.totals()
        assert totals.total_completed == 4
        assert totals.total_pending == 2
        assert totals.safe_count == 1
        assert totals.hazards_count == 3


def test_empty_stats_payload():
    totals = normalize_stats({}).totals()
    assert (totals.total_completed, totals.total_pending, totals.safe_count, totals.hazards_count) == (0, 0, 0, 0)


def test_format_confidence():
    assert format_confidence(0.873) == "87.3%"
    assert format_confidence(1) == "100.0%"
    assert format_confidence(None) == "0%"
