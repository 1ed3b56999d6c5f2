"""Tamamlanan analizler akışı, istatistikler ve elle tarama tetikleyicisi."""
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_analysis_worker, get_current_user_id, get_record_store
from app.core.config import settings
from app.schemas.images import ImageListResponse, StatsResponse, SweepResponse
from app.services.analysis_worker import AnalysisWorker
from app.services.record_store import RecordStore
from app.services.stats import compute_stats

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


@router.get("/completed", response_model=ImageListResponse)
def completed_analyses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
):
    """Genel akış: tüm sahiplerin completed kayıtları, en yeni önce."""
    return ImageListResponse.from_page(store.list_completed(page=page, limit=limit))


@router.get("/stats", response_model=StatsResponse)
def analysis_stats(
    _: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
):
    return StatsResponse.from_snapshot(compute_stats(store))


@router.post("/sweep", response_model=SweepResponse)
def run_sweep(
    _: int = Depends(get_current_user_id),
    worker: AnalysisWorker = Depends(get_analysis_worker),
):
    """Bekleyen kayıtları hemen işler (zamanlayıcıyı beklemeden)."""
    return SweepResponse(processed=worker.sweep(settings.analysis_sweep_batch))
