"""
Kayıt deposu: tek sözleşme, iki arka uç.
- MemoryRecordStore: süreç içi map (geliştirme/test, yeniden başlatınca silinir)
- SqlRecordStore: kalıcı image_records tablosu (SQLModel)
Oluşturmadan sonra tek değişiklik yolu transition(); pending olmayan kayda yazma InvalidTransition.
"""
import copy
import logging
import math
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import or_, update
from sqlmodel import Session, func, select

from app.core.errors import InvalidTransition, NotFound, ValidationError
from app.models import ImageRecord, RecordStatus
from app.schemas.analysis import CompletedOutcome, Outcome

logger = logging.getLogger(__name__)

ReleaseCallback = Callable[[ImageRecord], None]
ERROR_MESSAGE_MAX_CHARS = 500

_PENDING = RecordStatus.PENDING.value
_COMPLETED = RecordStatus.COMPLETED.value
_FAILED = RecordStatus.FAILED.value


@dataclass
class Page:
    items: list[ImageRecord]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def _check_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be 1 or greater")
    if limit < 1:
        raise ValidationError("limit must be 1 or greater")


def _as_utc(value: datetime) -> datetime:
    # Saat dilimi taşımayan sütunlardan okunan değerler UTC kabul edilir
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _is_stale(claimed_at: datetime | None, now: datetime, stale_after: float | None) -> bool:
    if stale_after is None:
        return False
    if claimed_at is None:
        return True
    return _as_utc(claimed_at) < now - timedelta(seconds=stale_after)


def outcome_values(outcome: Outcome, now: datetime | None = None) -> dict:
    """Terminal yazımın sütun değerleri. Failed kayıtta sonuç alanları boş kalır."""
    now = now or datetime.now(timezone.utc)
    if isinstance(outcome, CompletedOutcome):
        scores = None
        if outcome.confidence_scores is not None:
            scores = {name: score.model_dump() for name, score in outcome.confidence_scores.items()}
        return {
            "status": _COMPLETED,
            "risk_level": outcome.risk_level.value if outcome.risk_level else None,
            "risk_description": outcome.risk_description,
            "detected_objects": [obj.model_dump() for obj in outcome.detected_objects],
            "confidence_scores": scores,
            "error_message": None,
            "analyzed_at": now,
        }
    return {
        "status": _FAILED,
        "risk_level": None,
        "risk_description": None,
        "detected_objects": None,
        "confidence_scores": None,
        "error_message": (outcome.error_message or "")[:ERROR_MESSAGE_MAX_CHARS] or None,
        "analyzed_at": now,
    }


class RecordStore(ABC):
    """Görsel kayıtlarının kanonik durumu. Sahip kimliği (owner_id) auth katmanından doğrulanmış gelir."""

    def __init__(self, on_delete: ReleaseCallback | None = None):
        # Silmeden sonra dosya deposuna bırakma sinyali (dosyayı o siler)
        self.on_delete = on_delete

    def create(
        self,
        owner_id: int,
        filename: str,
        original_filename: str,
        file_path: str | None = None,
    ) -> ImageRecord:
        filename = (filename or "").strip()
        original_filename = (original_filename or "").strip()
        if not filename:
            raise ValidationError("filename is required")
        if not original_filename:
            raise ValidationError("original filename is required")
        record = ImageRecord(
            user_id=owner_id,
            filename=filename,
            original_filename=original_filename,
            file_path=file_path,
            status=_PENDING,
        )
        record = self._insert(record)
        logger.info("image record %s created for owner %s (%s)", record.id, owner_id, filename)
        return record

    def transition(self, record_id: int, outcome: Outcome, claim_token: str | None = None) -> ImageRecord:
        """pending → completed | failed; tek atomik yazım. claim_token verilirse claim sahibi de eşleşmeli."""
        record = self._conditional_write(record_id, outcome_values(outcome), claim_token)
        logger.info("image record %s -> %s (risk=%s)", record_id, record.status, record.risk_level)
        return record

    def delete(self, record_id: int, owner_id: int) -> ImageRecord:
        record = self._remove(record_id, owner_id)
        logger.info("image record %s deleted by owner %s", record_id, owner_id)
        if self.on_delete is not None:
            self.on_delete(record)
        return record

    @abstractmethod
    def _insert(self, record: ImageRecord) -> ImageRecord: ...

    @abstractmethod
    def _conditional_write(self, record_id: int, values: dict, claim_token: str | None) -> ImageRecord: ...

    @abstractmethod
    def _remove(self, record_id: int, owner_id: int) -> ImageRecord: ...

    @abstractmethod
    def get(self, record_id: int, owner_id: int) -> ImageRecord:
        """Sahip kapsamlı okuma; başkasının kaydı ile olmayan kayıt ayırt edilemez (NotFound)."""

    @abstractmethod
    def load(self, record_id: int) -> ImageRecord:
        """Sahip kapsamı olmadan okuma (yalnızca işçi için)."""

    @abstractmethod
    def list_completed(self, owner_id: int | None = None, page: int = 1, limit: int = 10) -> Page: ...

    @abstractmethod
    def list_for_owner(self, owner_id: int, page: int = 1, limit: int = 10) -> Page: ...

    @abstractmethod
    def list_pending(self, limit: int = 10) -> list[ImageRecord]: ...

    @abstractmethod
    def claim(self, record_id: int, worker_id: str, stale_after: float | None = None) -> bool:
        """Atomik compare-and-set: pending ve claim'siz (veya claim'i bayat) ise worker_id ile işaretler."""

    @abstractmethod
    def count_by_status(self, owner_id: int | None = None) -> dict[str, int]: ...

    @abstractmethod
    def count_by_risk_level(self, owner_id: int | None = None) -> dict[str | None, int]: ...


class MemoryRecordStore(RecordStore):
    """Süreç içi map. Kontrol-ve-yaz adımları tek kilit altında; analiz işi kilit dışında yürür."""

    def __init__(self, on_delete: ReleaseCallback | None = None):
        super().__init__(on_delete)
        self._rows: dict[int, dict] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    @staticmethod
    def _to_record(row: dict) -> ImageRecord:
        return ImageRecord(**copy.deepcopy(row))

    def _scoped(self, owner_id: int | None) -> list[dict]:
        return [r for r in self._rows.values() if owner_id is None or r["user_id"] == owner_id]

    def _page(self, rows: list[dict], page: int, limit: int) -> Page:
        rows = sorted(rows, key=lambda r: (r["upload_timestamp"], r["id"]), reverse=True)
        offset = (page - 1) * limit
        return Page(
            items=[self._to_record(r) for r in rows[offset : offset + limit]],
            page=page,
            limit=limit,
            total=len(rows),
        )

    def _insert(self, record: ImageRecord) -> ImageRecord:
        with self._lock:
            record.id = self._next_id
            self._next_id += 1
            row = record.model_dump()
            self._rows[record.id] = row
            return self._to_record(row)

    def _conditional_write(self, record_id: int, values: dict, claim_token: str | None) -> ImageRecord:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFound()
            if row["status"] != _PENDING:
                raise InvalidTransition(f"image record {record_id} is already {row['status']}")
            if claim_token is not None and row["claimed_by"] != claim_token:
                raise InvalidTransition(f"image record {record_id} is claimed by another worker")
            row.update(copy.deepcopy(values))
            return self._to_record(row)

    def _remove(self, record_id: int, owner_id: int) -> ImageRecord:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row["user_id"] != owner_id:
                raise NotFound()
            del self._rows[record_id]
            return self._to_record(row)

    def get(self, record_id: int, owner_id: int) -> ImageRecord:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row["user_id"] != owner_id:
                raise NotFound()
            return self._to_record(row)

    def load(self, record_id: int) -> ImageRecord:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFound()
            return self._to_record(row)

    def list_completed(self, owner_id: int | None = None, page: int = 1, limit: int = 10) -> Page:
        _check_paging(page, limit)
        with self._lock:
            rows = [r for r in self._scoped(owner_id) if r["status"] == _COMPLETED]
            return self._page(rows, page, limit)

    def list_for_owner(self, owner_id: int, page: int = 1, limit: int = 10) -> Page:
        _check_paging(page, limit)
        with self._lock:
            return self._page(self._scoped(owner_id), page, limit)

    def list_pending(self, limit: int = 10) -> list[ImageRecord]:
        with self._lock:
            rows = [r for r in self._rows.values() if r["status"] == _PENDING]
            rows.sort(key=lambda r: (r["upload_timestamp"], r["id"]))
            return [self._to_record(r) for r in rows[:limit]]

    def claim(self, record_id: int, worker_id: str, stale_after: float | None = None) -> bool:
        now = datetime.now(timezone.utc)
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row["status"] != _PENDING:
                return False
            if row["claimed_by"] is not None and not _is_stale(row["claimed_at"], now, stale_after):
                return False
            row["claimed_by"] = worker_id
            row["claimed_at"] = now
            return True

    def count_by_status(self, owner_id: int | None = None) -> dict[str, int]:
        with self._lock:
            return dict(Counter(r["status"] for r in self._scoped(owner_id)))

    def count_by_risk_level(self, owner_id: int | None = None) -> dict[str | None, int]:
        with self._lock:
            return dict(Counter(r["risk_level"] for r in self._scoped(owner_id) if r["status"] == _COMPLETED))


class SqlRecordStore(RecordStore):
    """image_records tablosu. Durum geçişleri koşullu UPDATE (WHERE status='pending') + rowcount ile."""

    def __init__(self, engine, on_delete: ReleaseCallback | None = None):
        super().__init__(on_delete)
        self.engine = engine

    def _session(self) -> Session:
        # Oturum kapansa da dönen kayıtların alanları okunabilsin
        return Session(self.engine, expire_on_commit=False)

    def _page(self, conditions: list, page: int, limit: int) -> Page:
        with self._session() as db:
            total = db.exec(select(func.count(ImageRecord.id)).where(*conditions)).one() or 0
            stmt = (
                select(ImageRecord)
                .where(*conditions)
                .order_by(ImageRecord.upload_timestamp.desc(), ImageRecord.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = list(db.exec(stmt).all())
        return Page(items=items, page=page, limit=limit, total=total)

    def _insert(self, record: ImageRecord) -> ImageRecord:
        with self._session() as db:
            db.add(record)
            db.commit()
            db.refresh(record)
        return record

    def _conditional_write(self, record_id: int, values: dict, claim_token: str | None) -> ImageRecord:
        conditions = [ImageRecord.id == record_id, ImageRecord.status == _PENDING]
        if claim_token is not None:
            conditions.append(ImageRecord.claimed_by == claim_token)
        with self.engine.begin() as conn:
            updated = conn.execute(update(ImageRecord).where(*conditions).values(**values)).rowcount
        if updated != 1:
            current = self._find(record_id)
            if current is None:
                raise NotFound()
            if current.is_terminal:
                raise InvalidTransition(f"image record {record_id} is already {current.status}")
            raise InvalidTransition(f"image record {record_id} is claimed by another worker")
        return self.load(record_id)

    def _remove(self, record_id: int, owner_id: int) -> ImageRecord:
        with self._session() as db:
            record = db.exec(
                select(ImageRecord).where(ImageRecord.id == record_id, ImageRecord.user_id == owner_id)
            ).first()
            if record is None:
                raise NotFound()
            db.delete(record)
            db.commit()
        return record

    def _find(self, record_id: int) -> ImageRecord | None:
        with self._session() as db:
            return db.get(ImageRecord, record_id)

    def get(self, record_id: int, owner_id: int) -> ImageRecord:
        with self._session() as db:
            record = db.exec(
                select(ImageRecord).where(ImageRecord.id == record_id, ImageRecord.user_id == owner_id)
            ).first()
        if record is None:
            raise NotFound()
        return record

    def load(self, record_id: int) -> ImageRecord:
        record = self._find(record_id)
        if record is None:
            raise NotFound()
        return record

    def list_completed(self, owner_id: int | None = None, page: int = 1, limit: int = 10) -> Page:
        _check_paging(page, limit)
        conditions = [ImageRecord.status == _COMPLETED]
        if owner_id is not None:
            conditions.append(ImageRecord.user_id == owner_id)
        return self._page(conditions, page, limit)

    def list_for_owner(self, owner_id: int, page: int = 1, limit: int = 10) -> Page:
        _check_paging(page, limit)
        return self._page([ImageRecord.user_id == owner_id], page, limit)

    def list_pending(self, limit: int = 10) -> list[ImageRecord]:
        stmt = (
            select(ImageRecord)
            .where(ImageRecord.status == _PENDING)
            .order_by(ImageRecord.upload_timestamp, ImageRecord.id)
            .limit(limit)
        )
        with self._session() as db:
            return list(db.exec(stmt).all())

    def claim(self, record_id: int, worker_id: str, stale_after: float | None = None) -> bool:
        now = datetime.now(timezone.utc)
        available = ImageRecord.claimed_by.is_(None)
        if stale_after is not None:
            available = or_(available, ImageRecord.claimed_at < now - timedelta(seconds=stale_after))
        stmt = (
            update(ImageRecord)
            .where(ImageRecord.id == record_id, ImageRecord.status == _PENDING, available)
            .values(claimed_by=worker_id, claimed_at=now)
        )
        with self.engine.begin() as conn:
            claimed = conn.execute(stmt).rowcount
        return claimed == 1

    def count_by_status(self, owner_id: int | None = None) -> dict[str, int]:
        stmt = select(ImageRecord.status, func.count(ImageRecord.id)).group_by(ImageRecord.status)
        if owner_id is not None:
            stmt = stmt.where(ImageRecord.user_id == owner_id)
        with self._session() as db:
            return {status: count for status, count in db.exec(stmt).all()}

    def count_by_risk_level(self, owner_id: int | None = None) -> dict[str | None, int]:
        stmt = (
            select(ImageRecord.risk_level, func.count(ImageRecord.id))
            .where(ImageRecord.status == _COMPLETED)
            .group_by(ImageRecord.risk_level)
        )
        if owner_id is not None:
            stmt = stmt.where(ImageRecord.user_id == owner_id)
        with self._session() as db:
            return {level: count for level, count in db.exec(stmt).all()}


def build_record_store(backend: str, engine=None, on_delete: ReleaseCallback | None = None) -> RecordStore:
    """Arka uç yalnızca burada seçilir (RECORD_STORE ayarı)."""
    if backend == "memory":
        return MemoryRecordStore(on_delete=on_delete)
    if engine is None:
        raise ValueError("SQL record store needs an engine")
    return SqlRecordStore(engine, on_delete=on_delete)
