"""Görsel kayıtları: yükleme, sahibin listesi, detay, silme. Tüm okumalar sahip kapsamlı."""
import logging

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from app.api.deps import get_analysis_worker, get_current_user_id, get_file_storage, get_record_store
from app.core.config import settings
from app.core.errors import ValidationError
from app.core.rate_limit import UPLOAD_LIMIT, limiter
from app.schemas.images import (
    ImageDetailResponse,
    ImageListResponse,
    ImageRecordOut,
    MessageResponse,
    UploadResponse,
)
from app.services.analysis_worker import AnalysisWorker
from app.services.file_storage import FileStorage
from app.services.record_store import RecordStore

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("/upload", response_model=UploadResponse, status_code=201)
@limiter.limit(UPLOAD_LIMIT)
async def upload_image(
    request: Request,
    image: UploadFile | None = File(None),
    user_id: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
    storage: FileStorage = Depends(get_file_storage),
    worker: AnalysisWorker = Depends(get_analysis_worker),
):
    """multipart/form-data, alan adı 'image'. Kayıt pending oluşur; analiz arka planda başlar."""
    if image is None or not image.filename:
        raise ValidationError("No image file provided")
    content = await image.read()
    filename, file_path = storage.save(content, image.filename, image.content_type)
    try:
        record = store.create(user_id, filename, image.filename, file_path=file_path)
    except Exception:
        storage.discard(file_path)
        raise
    log.info("upload: image record %s (%s, %d bytes) by user %s", record.id, filename, len(content), user_id)
    if settings.analysis_on_upload and record.id is not None:
        try:
            worker.submit(record.id)
        except RuntimeError as e:
            # Kayıt pending kalır; periyodik tarama onu işler
            log.warning("upload: could not start analysis for image record %s: %s", record.id, e)
    return UploadResponse(
        image_id=record.id or 0,
        filename=record.filename,
        original_name=record.original_filename,
        status=record.status,
    )


@router.get("/my-images", response_model=ImageListResponse)
def my_images(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
):
    return ImageListResponse.from_page(store.list_for_owner(user_id, page=page, limit=limit))


@router.get("/{image_id}", response_model=ImageDetailResponse)
def get_image(
    image_id: int,
    user_id: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
):
    return ImageDetailResponse(image=ImageRecordOut.from_record(store.get(image_id, user_id)))


@router.delete("/{image_id}", response_model=MessageResponse)
def delete_image(
    image_id: int,
    user_id: int = Depends(get_current_user_id),
    store: RecordStore = Depends(get_record_store),
):
    """Kaydı siler; dosya deposu on_delete sinyaliyle dosyayı kaldırır."""
    store.delete(image_id, user_id)
    return MessageResponse(message="Image deleted successfully")
