from .error_log import ErrorLog
from .image_record import TERMINAL_STATUSES, ImageRecord, RecordStatus, RiskLevel
from .user import User

__all__ = [
    "ErrorLog",
    "ImageRecord",
    "RecordStatus",
    "RiskLevel",
    "TERMINAL_STATUSES",
    "User",
]
