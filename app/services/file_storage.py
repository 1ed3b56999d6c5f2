"""Yüklenen görsellerin diskte saklanması: kaydet, işçi için oku, kayıt silinince bırak (unlink)."""
import logging
import time
import uuid
from pathlib import Path

from app.core.errors import ValidationError
from app.models import ImageRecord

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
MIME_MAP = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
# Tarayıcıların gönderdiği eski "image/jpg" da kabul edilir
ALLOWED_IMAGE_MIME_TYPES = set(MIME_MAP.values()) | {"image/jpg"}


def extension_of(filename: str) -> str:
    return "." + filename.lower().rsplit(".", 1)[-1] if "." in filename else ""


class FileStorage:
    def __init__(self, upload_dir: str | Path, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def validate(self, content: bytes, original_filename: str, content_type: str | None = None) -> str:
        """Uzantı, içerik türü (verildiyse), boyut ve boşluk kontrolü; geçerli uzantıyı döner."""
        if not (original_filename or "").strip():
            raise ValidationError("No image file provided")
        ext = extension_of(original_filename)
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError("Only image files are allowed!")
        if content_type is not None:
            mime = content_type.split(";", 1)[0].strip().lower()
            if mime not in ALLOWED_IMAGE_MIME_TYPES:
                raise ValidationError("Only image files are allowed!")
        if len(content) == 0:
            raise ValidationError("Image file is empty.")
        if len(content) > self.max_bytes:
            raise ValidationError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB.")
        return ext

    def save(self, content: bytes, original_filename: str, content_type: str | None = None) -> tuple[str, str]:
        """Dosyayı <uuid>-<ms><uzantı> adıyla yazar; (filename, file_path) döner."""
        ext = self.validate(content, original_filename, content_type)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored_name = f"{uuid.uuid4()}-{int(time.time() * 1000)}{ext}"
        path = self.upload_dir / stored_name
        path.write_bytes(content)
        return stored_name, str(path)

    def read(self, record: ImageRecord) -> tuple[bytes, str]:
        """İşçi için: (içerik, mime). Dosya yoksa OSError yükselir."""
        path = self._path_for(record)
        return path.read_bytes(), MIME_MAP.get(extension_of(record.filename), "image/jpeg")

    def release(self, record: ImageRecord) -> None:
        """Kayıt silindikten sonra dosyayı siler. Eksik dosya sadece loglanır."""
        path = self._path_for(record)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("release: file for image record %s already gone (%s)", record.id, path)
        except OSError as e:
            logger.error("release: could not delete %s for image record %s: %s", path, record.id, e)

    def discard(self, file_path: str) -> None:
        """Kayıt oluşturulamadıysa yeni yazılan dosyayı geri al."""
        Path(file_path).unlink(missing_ok=True)

    def _path_for(self, record: ImageRecord) -> Path:
        if record.file_path:
            return Path(record.file_path)
        return self.upload_dir / record.filename
