"""Görsel kayıtlarının sahibi. Kayıtlar user_id ile bağlanır; kullanıcı silinmez."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)  # küçük harfe çevrilmiş
    hashed_password: str
    full_name: str = ""
    created_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))
    # /auth/login her başarılı girişte günceller
    last_login_at: datetime | None = None
