"""IP bazlı rate limiting (SlowAPI). Limit metinleri ayarlardan bir kez üretilir."""
from fastapi import Request
from slowapi import Limiter

from .config import settings


def client_ip(request: Request) -> str:
    """X-Forwarded-For varsa ilk adres (proxy arkası), yoksa bağlantı adresi."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client and request.client.host else "127.0.0.1"


def per_minute(count: int) -> str:
    return f"{count}/minute"


DEFAULT_LIMIT = per_minute(settings.rate_limit_per_minute)
REGISTER_LIMIT = per_minute(settings.rate_limit_register_per_minute)
# Her yükleme bir analiz tetikler; ayrı, daha sıkı limit
UPLOAD_LIMIT = per_minute(settings.rate_limit_upload_per_minute)

limiter = Limiter(key_func=client_ip)
