"""Analizör yanıtı doğrulama ve OpenAI istemcisi (ağ yok; istemci taklit edilir)."""
import json
from types import SimpleNamespace

import pytest

from app.core.errors import ProcessingFailure
from app.models import RiskLevel
from app.services import analyze as analyze_module
from app.services.analyze import OpenAIRiskAnalyzer, parse_analysis_reply


def test_parse_full_reply():
    raw = json.dumps(
        {
            "risk_level": "medium",
            "risk_description": "Knife on the counter edge.",
            "detected_objects": [{"name": "knife", "confidence": 0.91}],
            "confidence_scores": {"knife": {"confidence": 0.91}},
        }
    )
    result = parse_analysis_reply(raw)
    assert result.risk_level is RiskLevel.MEDIUM
    assert result.detected_objects[0].name == "knife"
    assert result.confidence_scores["knife"].confidence == 0.91


def test_parse_accepts_code_fence_and_short_scores():
    raw = '```json\n{"risk_level": "none", "detected_objects": null, "confidence_scores": {"sofa": 0.4}}\n```'
    result = parse_analysis_reply(raw)
    assert result.risk_level is RiskLevel.NONE
    assert result.detected_objects == []
    assert result.confidence_scores["sofa"].confidence == 0.4


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        '{"risk_level": "extreme"}',
        '{"risk_level": "low", "detected_objects": [{"name": "fire", "confidence": 87}]}',
        '{"risk_level": "low", "confidence_scores": {"fire": -0.1}}',
    ],
)
def test_parse_rejects_invalid_replies(raw):
    with pytest.raises(ProcessingFailure):
        parse_analysis_reply(raw)


def test_boundary_confidences_are_valid():
    raw = '{"risk_level": "high", "detected_objects": [{"name": "a", "confidence": 0}, {"name": "b", "confidence": 1}]}'
    assert [o.confidence for o in parse_analysis_reply(raw).detected_objects] == [0.0, 1.0]


def test_analyze_without_keys_raises(monkeypatch):
    monkeypatch.setattr(analyze_module, "get_openai_keys", lambda: [])
    with pytest.raises(ProcessingFailure):
        OpenAIRiskAnalyzer().analyze(b"img", "image/png")


def test_analyze_sends_image_and_parses(monkeypatch):
    sent = {}

    class FakeCompletions:
        def create(self, **kwargs):
            sent.update(kwargs)
            message = SimpleNamespace(content='{"risk_level": "low", "risk_description": "ok"}')
            return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions()))
    monkeypatch.setattr(analyze_module, "get_openai_keys", lambda: ["sk-test"])
    monkeypatch.setattr(analyze_module, "_get_client_for_key", lambda key: fake_client)

    result = OpenAIRiskAnalyzer(model="gpt-4o-mini").analyze(b"\x89PNG", "image/png")
    assert result.risk_level is RiskLevel.LOW
    assert sent["model"] == "gpt-4o-mini"
    assert sent["response_format"] == {"type": "json_object"}
    image_part = sent["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


def test_analyze_empty_reply_raises(monkeypatch):
    class FakeCompletions:
        def create(self, **kwargs):
            return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=""))])

    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions()))
    monkeypatch.setattr(analyze_module, "get_openai_keys", lambda: ["sk-test"])
    monkeypatch.setattr(analyze_module, "_get_client_for_key", lambda key: fake_client)
    with pytest.raises(ProcessingFailure):
        OpenAIRiskAnalyzer().analyze(b"x", "image/jpeg")
