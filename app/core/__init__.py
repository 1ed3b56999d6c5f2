from .config import settings
from .database import engine, get_db, init_db
from .errors import InvalidTransition, NotFound, ProcessingFailure, RecordError, ValidationError

__all__ = [
    "settings",
    "engine",
    "get_db",
    "init_db",
    "RecordError",
    "ValidationError",
    "NotFound",
    "InvalidTransition",
    "ProcessingFailure",
]
