"""Görsel kaydı: pending → completed | failed (terminal). Tek değişiklik yolu RecordStore.transition."""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class RecordStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RiskLevel(str, Enum):
    """Sıralı risk sınıfı: none < low < medium < high."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TERMINAL_STATUSES = frozenset({RecordStatus.COMPLETED.value, RecordStatus.FAILED.value})


class ImageRecord(SQLModel, table=True):
    __tablename__ = "image_records"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    filename: str  # depolama adı (uuid-zaman.uzantı)
    original_filename: str  # kullanıcının yüklediği ad
    file_path: str | None = None  # API'de gösterilmez
    upload_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    status: str = Field(default=RecordStatus.PENDING.value, index=True)  # pending | completed | failed
    risk_level: str | None = None  # none | low | medium | high
    risk_description: str | None = None
    detected_objects: list[dict] | None = Field(default=None, sa_column=Column(JSON))
    confidence_scores: dict | None = Field(default=None, sa_column=Column(JSON))
    # İşçi claim işareti; status hâlâ pending iken dolu olabilir
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    analyzed_at: datetime | None = None
    error_message: str | None = None  # yalnızca failed

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
