"""Durum ve risk dağılımları: her sorguda kayıt deposundan yeniden hesaplanır (önbellek yok)."""
from dataclasses import dataclass

from app.models import RecordStatus, RiskLevel
from app.services.record_store import RecordStore

STATUS_ORDER = [s.value for s in RecordStatus]
# none < low < medium < high; seviyesi boş (unset) completed kayıtlar en sonda
RISK_ORDER = [r.value for r in RiskLevel]


@dataclass(frozen=True)
class StatusCount:
    status: str
    count: int


@dataclass(frozen=True)
class RiskCount:
    risk_level: str | None
    count: int


@dataclass(frozen=True)
class StatsTotals:
    total_completed: int
    total_pending: int
    safe_count: int
    hazards_count: int


@dataclass(frozen=True)
class StatsSnapshot:
    status_distribution: list[StatusCount]
    risk_distribution: list[RiskCount]

    def totals(self) -> StatsTotals:
        return derive_totals(self.status_distribution, self.risk_distribution)


def derive_totals(status_distribution: list[StatusCount], risk_distribution: list[RiskCount]) -> StatsTotals:
    """İstemcinin dayandığı dört sayı. none dışındaki her seviye (unset dahil) tehlike sayılır."""
    by_status = {s.status: s.count for s in status_distribution}
    safe = sum(r.count for r in risk_distribution if r.risk_level == RiskLevel.NONE.value)
    hazards = sum(r.count for r in risk_distribution if r.risk_level != RiskLevel.NONE.value)
    return StatsTotals(
        total_completed=by_status.get(RecordStatus.COMPLETED.value, 0),
        total_pending=by_status.get(RecordStatus.PENDING.value, 0),
        safe_count=safe,
        hazards_count=hazards,
    )


def _risk_rank(level: str | None) -> int:
    return RISK_ORDER.index(level) if level in RISK_ORDER else len(RISK_ORDER)


def compute_stats(store: RecordStore, owner_id: int | None = None) -> StatsSnapshot:
    status_counts = store.count_by_status(owner_id)
    risk_counts = store.count_by_risk_level(owner_id)
    status_distribution = [
        StatusCount(status=status, count=status_counts[status]) for status in STATUS_ORDER if status_counts.get(status)
    ]
    # Bilinmeyen durum değerleri (eski veri) yine de görünür kalsın
    status_distribution += [
        StatusCount(status=status, count=count)
        for status, count in sorted(status_counts.items())
        if status not in STATUS_ORDER and count
    ]
    risk_distribution = [
        RiskCount(risk_level=level, count=count)
        for level, count in sorted(risk_counts.items(), key=lambda item: (_risk_rank(item[0]), item[0] or ""))
        if count
    ]
    return StatsSnapshot(status_distribution=status_distribution, risk_distribution=risk_distribution)
