"""Parola hash'i (bcrypt) ve erişim token'ı (HS256 JWT). Token'ın sub alanı kaydın sahibi olan kullanıcı id'si."""
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from .config import settings

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24
MAX_BCRYPT_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt 72 bayttan sonrasını yok sayar; yeni sürümler hata verir
    return password.encode("utf-8")[:MAX_BCRYPT_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Bozuk hash: giriş başarısız sayılır
        return False


def create_access_token(owner_id: int, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    claims = {
        "sub": str(owner_id),
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def owner_id_from_token(token: str) -> int | None:
    """Geçerli token'dan sahip id'si; süresi geçmiş, imzası bozuk veya sub'ı sayı olmayan token için None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
