"""Beklenmeyen hatalar (500): app/main.py'deki genel exception handler yazar."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class ErrorLog(SQLModel, table=True):
    __tablename__ = "error_logs"
    id: int | None = Field(default=None, primary_key=True)
    request_id: str | None = Field(default=None, index=True)  # X-Request-ID
    user_id: int | None = Field(default=None, index=True)  # token varsa sahibi
    endpoint: str
    method: str
    error_type: str
    error_message: str = ""
    stack_trace: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
