"""
API sınırı: iç model (snake_case) ile JSON yanıtı (camelCase) arasındaki tek eşleme adımı.
İş mantığı bu modelleri görmez; route'lar kayıtları burada çevirir.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models import ImageRecord
from app.schemas.analysis import ConfidenceScore, DetectedObject
from app.services.record_store import Page
from app.services.stats import StatsSnapshot


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageRecordOut(CamelModel):
    id: int
    filename: str
    original_filename: str
    upload_timestamp: datetime
    status: str
    risk_level: str | None = None
    risk_description: str | None = None
    detected_objects: list[DetectedObject] | None = None
    confidence_scores: dict[str, ConfidenceScore] | None = None
    analyzed_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImageRecordOut":
        return cls(
            id=record.id or 0,
            filename=record.filename,
            original_filename=record.original_filename,
            upload_timestamp=record.upload_timestamp,
            status=record.status,
            risk_level=record.risk_level,
            risk_description=record.risk_description,
            detected_objects=record.detected_objects,
            confidence_scores=record.confidence_scores,
            analyzed_at=record.analyzed_at,
        )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ImageListResponse(CamelModel):
    images: list[ImageRecordOut]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: Page) -> "ImageListResponse":
        return cls(
            images=[ImageRecordOut.from_record(r) for r in page.items],
            pagination=Pagination(page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages),
        )


class ImageDetailResponse(CamelModel):
    image: ImageRecordOut


class UploadResponse(CamelModel):
    message: str = "Image uploaded successfully"
    image_id: int
    filename: str
    original_name: str
    status: str


class MessageResponse(CamelModel):
    message: str


class StatusCountOut(CamelModel):
    status: str
    count: int


class RiskCountOut(CamelModel):
    risk_level: str | None
    count: int


class StatsTotalsOut(CamelModel):
    total_completed: int
    total_pending: int
    safe_count: int
    hazards_count: int


class StatsResponse(CamelModel):
    status_distribution: list[StatusCountOut]
    risk_distribution: list[RiskCountOut]
    totals: StatsTotalsOut

    @classmethod
    def from_snapshot(cls, snapshot: StatsSnapshot) -> "StatsResponse":
        totals = snapshot.totals()
        return cls(
            status_distribution=[StatusCountOut(status=s.status, count=s.count) for s in snapshot.status_distribution],
            risk_distribution=[RiskCountOut(risk_level=r.risk_level, count=r.count) for r in snapshot.risk_distribution],
            totals=StatsTotalsOut(
                total_completed=totals.total_completed,
                total_pending=totals.total_pending,
                safe_count=totals.safe_count,
                hazards_count=totals.hazards_count,
            ),
        )


class SweepResponse(CamelModel):
    processed: int
