from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core.database import get_db
from app.core.security import owner_id_from_token
from app.models import User
from app.services.analysis_worker import AnalysisWorker
from app.services.file_storage import FileStorage
from app.services.record_store import RecordStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Kayıt route'larının kullandığı tek kimlik: token'daki sahip id'si."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    owner_id = owner_id_from_token(credentials.credentials)
    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )
    return owner_id


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


# Lifespan'da app.state üzerine kurulan servisler (app/main.py)
def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage


def get_analysis_worker(request: Request) -> AnalysisWorker:
    return request.app.state.analysis_worker
