"""Analiz sonucu ve durum geçişi (outcome) modelleri. Güven değerleri her zaman [0,1] kesir."""
from typing import Literal

from pydantic import BaseModel, Field

from app.models import RiskLevel


class DetectedObject(BaseModel):
    name: str
    confidence: float = Field(ge=0.0, le=1.0)


class ConfidenceScore(BaseModel):
    confidence: float = Field(ge=0.0, le=1.0)


class AnalysisResult(BaseModel):
    """Analizörün ürettiği değerlendirme."""

    risk_level: RiskLevel | None = None
    risk_description: str = ""
    detected_objects: list[DetectedObject] = Field(default_factory=list)
    confidence_scores: dict[str, ConfidenceScore] | None = None


class CompletedOutcome(AnalysisResult):
    status: Literal["completed"] = "completed"

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "CompletedOutcome":
        return cls(**result.model_dump())


class FailedOutcome(BaseModel):
    status: Literal["failed"] = "failed"
    error_message: str | None = None


Outcome = CompletedOutcome | FailedOutcome
