import base64
import json
import logging
import time
from typing import Protocol

from openai import APIConnectionError, APIError, AuthenticationError, OpenAI, RateLimitError
from pydantic import ValidationError as SchemaValidationError

from app.core.config import get_openai_keys, is_openai_configured, settings
from app.core.errors import ProcessingFailure
from app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)
OPENAI_TIMEOUT = 30.0
OPENAI_RETRY_WAIT = 1.5
OPENAI_RETRY_ONCE = (RateLimitError, APIConnectionError)

# Anahtar başına bir istemci (çoklu anahtar fallback için)
_openai_clients: dict[str, OpenAI] = {}

# Bir anahtar auth/rate limit verince diğerine geçilecek
OPENAI_FALLBACK_EXCEPTIONS = (AuthenticationError, RateLimitError)

RISK_PROMPT = """You are a home-safety inspector. Look at the photo and assess hazards for a vulnerable person
(elderly, child) in that environment: trip hazards, sharp objects, fire, exposed wiring, water, stairs, medication.

Reply with ONLY a JSON object of this shape:
{
  "risk_level": "none" | "low" | "medium" | "high",
  "risk_description": "<one or two sentences explaining the rating>",
  "detected_objects": [{"name": "<object>", "confidence": <fraction between 0 and 1>}],
  "confidence_scores": {"<object>": {"confidence": <fraction between 0 and 1>}}
}
Confidence values are fractions in [0, 1], never percentages. Use an empty list when nothing relevant is visible.
"""


class RiskAnalyzer(Protocol):
    """Görsel baytlarından risk değerlendirmesi üretir; başaramazsa hata fırlatır."""

    def analyze(self, content: bytes, mime: str) -> AnalysisResult: ...


def _get_client_for_key(key: str) -> OpenAI:
    """Verilen anahtar için OpenAI istemcisi döner (önbelleklenmiş)."""
    if key not in _openai_clients:
        _openai_clients[key] = OpenAI(api_key=key, timeout=OPENAI_TIMEOUT)
    return _openai_clients[key]


def _openai_create_with_fallback(create_fn):
    """
    create_fn(client) çağrısını yapar; AuthenticationError veya RateLimitError olursa
    sıradaki anahtarla tekrar dener. Tüm anahtarlar başarısızsa son hatayı fırlatır.
    """
    keys = get_openai_keys()
    if not keys:
        raise ProcessingFailure("OPENAI_API_KEY is not configured; image cannot be analyzed.")
    last_exc: Exception | None = None
    for key in keys:
        try:
            client = _get_client_for_key(key)
            return create_fn(client)
        except OPENAI_FALLBACK_EXCEPTIONS as e:
            last_exc = e
            logger.warning("OpenAI key skipped (%s), trying next: %s", key[:12] + "...", e)
            continue
    raise ProcessingFailure(f"All OpenAI keys failed: {last_exc}")


def _openai_safe_call(create_fn):
    """OpenAI çağrısını yapar; RateLimitError/APIConnectionError'da 1 kez 1.5 sn bekleyip tekrar dener."""
    try:
        return create_fn()
    except OPENAI_RETRY_ONCE as e:
        logger.warning("OpenAI retry after %s: %s", type(e).__name__, e)
        time.sleep(OPENAI_RETRY_WAIT)
        return create_fn()


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_analysis_reply(raw: str) -> AnalysisResult:
    """
    Model yanıtını doğrular. Güven değerleri [0,1] dışında ise veya risk seviyesi
    bilinmiyorsa ProcessingFailure (kayıt failed olur).
    """
    try:
        data = json.loads(_strip_code_fence(raw))
    except ValueError as e:
        raise ProcessingFailure(f"Analyzer reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProcessingFailure("Analyzer reply must be a JSON object.")
    scores = data.get("confidence_scores")
    if isinstance(scores, dict):
        # {"knife": 0.8} kısa biçimini {"knife": {"confidence": 0.8}} olarak kabul et
        data["confidence_scores"] = {
            name: ({"confidence": value} if isinstance(value, (int, float)) else value)
            for name, value in scores.items()
        }
    if data.get("detected_objects") is None:
        data["detected_objects"] = []
    try:
        return AnalysisResult.model_validate(data)
    except SchemaValidationError as e:
        raise ProcessingFailure(f"Analyzer reply failed validation: {e.error_count()} error(s)") from e


class OpenAIRiskAnalyzer:
    """Görseli vision modeline gönderir, JSON yanıtı AnalysisResult'a çevirir."""

    def __init__(self, model: str | None = None, max_tokens: int = 800):
        self.model = model or settings.openai_model
        self.max_tokens = max_tokens

    @staticmethod
    def is_configured() -> bool:
        return is_openai_configured()

    def analyze(self, content: bytes, mime: str) -> AnalysisResult:
        image_url = f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"
        messages = [
            {"role": "system", "content": RISK_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Assess the safety risk in this image."},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            },
        ]

        def create(client: OpenAI):
            return _openai_safe_call(
                lambda: client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    response_format={"type": "json_object"},
                    max_tokens=self.max_tokens,
                    temperature=0,
                )
            )

        t0 = time.perf_counter()
        try:
            response = _openai_create_with_fallback(create)
        except APIError as e:
            logger.exception("OpenAI image analysis error: %s", e)
            raise ProcessingFailure(f"OpenAI error: {type(e).__name__}") from e
        logger.info("OpenAI image analysis took %.0f ms", (time.perf_counter() - t0) * 1000)
        raw = (response.choices[0].message.content or "") if response.choices else ""
        if not raw.strip():
            raise ProcessingFailure("Analyzer returned an empty reply.")
        return parse_analysis_reply(raw)
