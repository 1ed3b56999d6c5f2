"""Auth: kayıt, giriş, /me. Çekirdek yalnızca doğrulanmış user_id'yi kullanır (app/api/deps.py)."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError as SchemaValidationError
from sqlmodel import Session, select

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.rate_limit import DEFAULT_LIMIT, REGISTER_LIMIT, limiter
from app.core.security import create_access_token, hash_password, verify_password
from app.models import User
from app.schemas import Token, UserCreate, UserLogin, UserResponse

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _first_error(exc: SchemaValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    field = str(first["loc"][-1]) if first.get("loc") else "body"
    return f"{field}: {first.get('msg') or 'invalid value'}"


@router.post("/register", response_model=UserResponse)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    try:
        body = UserCreate(
            email=(form.get("email") or "").strip(),
            password=form.get("password") or "",
            full_name=(form.get("full_name") or "").strip(),
        )
    except SchemaValidationError as e:
        raise HTTPException(status_code=422, detail=_first_error(e))
    if db.exec(select(User).where(User.email == body.email)).first():
        raise HTTPException(status_code=400, detail="This email is already registered.")
    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user registered: id=%s", user.id)
    return UserResponse(id=user.id or 0, email=user.email, full_name=user.full_name or "", created_at=user.created_at)


@router.post("/login", response_model=Token)
@limiter.limit(DEFAULT_LIMIT)
async def login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    try:
        body = UserLogin(email=(form.get("email") or "").strip(), password=form.get("password") or "")
    except SchemaValidationError as e:
        raise HTTPException(status_code=422, detail=_first_error(e))
    user = db.exec(select(User).where(User.email == body.email)).first()
    if not user or not verify_password(body.password, user.hashed_password):
        log.warning("failed login for %s", body.email)
        raise HTTPException(status_code=401, detail="Invalid email or password.")
    user.last_login_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse(id=user.id or 0, email=user.email, full_name=user.full_name or "", created_at=user.created_at)
