"""
İstemci sınırı: sunucu yanıtlarını tek seferde, adlandırma kuralından bağımsız görünümlere çevirir.
snake_case, camelCase ve eski anahtarlar (originalName, analysis_status, level) kabul edilir.
"""
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.services.stats import RiskCount, StatsTotals, StatusCount, derive_totals


class _View(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ObjectView(_View):
    name: str = "Unknown"
    confidence: float | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_default(cls, v: Any) -> Any:
        return v or "Unknown"


class ImageView(_View):
    id: int | None = Field(None, validation_alias=AliasChoices("id", "image_id", "imageId", "analysis_id", "analysisId"))
    filename: str | None = None
    original_filename: str | None = Field(
        None, validation_alias=AliasChoices("original_filename", "originalFilename", "originalName", "original_name")
    )
    upload_timestamp: datetime | None = Field(None, validation_alias=AliasChoices("upload_timestamp", "uploadTimestamp"))
    status: str | None = Field(None, validation_alias=AliasChoices("status", "analysis_status", "analysisStatus"))
    risk_level: str | None = Field(None, validation_alias=AliasChoices("risk_level", "riskLevel", "level"))
    risk_description: str | None = Field(None, validation_alias=AliasChoices("risk_description", "riskDescription"))
    detected_objects: list[ObjectView] = Field(
        default_factory=list, validation_alias=AliasChoices("detected_objects", "detectedObjects")
    )
    confidence_scores: dict[str, Any] | None = Field(
        None, validation_alias=AliasChoices("confidence_scores", "confidenceScores")
    )
    analyzed_at: datetime | None = Field(None, validation_alias=AliasChoices("analyzed_at", "analyzedAt"))

    @field_validator("detected_objects", mode="before")
    @classmethod
    def _objects_default(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("upload_timestamp", "analyzed_at", mode="before")
    @classmethod
    def _bad_date_is_none(cls, v: Any) -> Any:
        # Okunamayan tarih görünümü bozmasın; "-" olarak gösterilir
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                return None
        return v


class StatusCountView(_View):
    status: str | None = Field(None, validation_alias=AliasChoices("status", "analysis_status", "analysisStatus"))
    count: int = 0


class RiskCountView(_View):
    risk_level: str | None = Field(None, validation_alias=AliasChoices("risk_level", "riskLevel", "level"))
    count: int = 0


class StatsView(_View):
    status_distribution: list[StatusCountView] = Field(
        default_factory=list, validation_alias=AliasChoices("status_distribution", "statusDistribution")
    )
    risk_distribution: list[RiskCountView] = Field(
        default_factory=list, validation_alias=AliasChoices("risk_distribution", "riskDistribution")
    )

    def totals(self) -> StatsTotals:
        """Sunucu totals gönderse de göndermese de dağılımlardan yeniden türetilir."""
        return derive_totals(
            [StatusCount(status=s.status or "", count=s.count) for s in self.status_distribution],
            [RiskCount(risk_level=r.risk_level, count=r.count) for r in self.risk_distribution],
        )


def normalize_image(payload: dict) -> ImageView:
    return ImageView.model_validate(payload or {})


def normalize_image_list(payload: dict | list | None) -> list[ImageView]:
    """`images` (güncel) veya `analyses` (eski) listesini kabul eder; yoksa boş liste."""
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = payload.get("images")
        if items is None:
            items = payload.get("analyses")
    else:
        items = None
    return [normalize_image(item) for item in items or []]


def normalize_stats(payload: dict | None) -> StatsView:
    return StatsView.model_validate(payload or {})


def format_confidence(value: float | None) -> str:
    """0..1 güveni yüzde metnine çevirir (0.873 → "87.3%")."""
    if value is None:
        return "0%"
    return f"{value * 100:.1f}%"
