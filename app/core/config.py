from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env proje kökünde: app/core/config.py -> app/core -> app -> kök
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

# OpenAI anahtarının geçerli sayılması için (başında boşluk vb. olmaması)
OPENAI_KEY_PREFIX = "sk-"

RECORD_STORE_BACKENDS = ("sql", "memory")


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./alwaycare.db"
    # Kayıt deposu: "sql" (kalıcı tablo) veya "memory" (süreç içi, yeniden başlatınca silinir)
    record_store: str = "sql"
    # CORS: virgülle ayrılmış origin listesi
    cors_origins: str = "*"
    rate_limit_per_minute: int = 60
    rate_limit_register_per_minute: int = 3
    rate_limit_upload_per_minute: int = 30
    # Yüklenen görseller
    upload_dir: str = str(_ROOT / "data" / "uploads")
    upload_max_mb: int = 10
    # Analiz işçisi: periyodik tarama (0 = kapalı), tarama başına kayıt, takılan claim süresi
    analysis_sweep_interval_seconds: float = 30.0
    analysis_sweep_batch: int = 10
    analysis_claim_timeout_seconds: float = 300.0
    # Yüklemeden hemen sonra arka planda analiz başlat
    analysis_on_upload: bool = True
    openai_api_key: str = ""
    # Birden fazla anahtar: virgülle ayrılmış. Biri bozulunca/limit dolunca sıradakine geçilir.
    openai_api_keys: str = ""
    openai_model: str = "gpt-4o-mini"
    # Polling istemcisi yenileme aralığı
    poll_interval_seconds: float = 5.0
    environment: str = "development"
    log_level: str = "INFO"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("openai_api_key", "openai_api_keys", mode="before")
    @classmethod
    def strip_openai_key(cls, v: str | None) -> str:
        """Boşluk/yanlış kopya kaynaklı hataları azaltır."""
        return (v or "").strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("record_store", mode="before")
    @classmethod
    def normalize_record_store(cls, v: str | None) -> str:
        value = (v or "sql").strip().lower()
        if value not in RECORD_STORE_BACKENDS:
            raise ValueError(f"RECORD_STORE must be one of {', '.join(RECORD_STORE_BACKENDS)}")
        return value

    @property
    def upload_max_bytes(self) -> int:
        return self.upload_max_mb * 1024 * 1024


settings = Settings()


def get_openai_keys() -> list[str]:
    """
    Geçerli OpenAI anahtarlarını döner (sk- ile başlayan, boşluksuz).
    OPENAI_API_KEYS varsa virgülle ayrılmış liste; yoksa OPENAI_API_KEY tek eleman.
    """
    keys_raw = (settings.openai_api_keys or "").strip()
    if keys_raw:
        keys = [k.strip() for k in keys_raw.split(",") if k.strip() and k.strip().startswith(OPENAI_KEY_PREFIX)]
        if keys:
            return keys
    single = (settings.openai_api_key or "").strip()
    if single and single.startswith(OPENAI_KEY_PREFIX):
        return [single]
    return []


def is_openai_configured() -> bool:
    """En az bir geçerli OpenAI anahtarı var mı?"""
    return len(get_openai_keys()) > 0
