import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Uvicorn nereden çalışırsa çalışsın .env proje kökünden yüklensin
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.analysis import router as analysis_router
from app.api.auth import router as auth_router
from app.api.images import router as images_router
from app.core.config import settings
from app.core.database import engine, init_db, ping_db
from app.core.errors import InvalidTransition, RecordError
from app.core.rate_limit import limiter
from app.core.security import owner_id_from_token
from app.logging import setup_logging
from app.models import ErrorLog
from app.services.analysis_worker import AnalysisSweeper, AnalysisWorker
from app.services.analyze import OpenAIRiskAnalyzer
from app.services.file_storage import FileStorage
from app.services.record_store import build_record_store

setup_logging(level=settings.log_level)
log = logging.getLogger("alwaycare")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    storage = FileStorage(settings.upload_dir, settings.upload_max_bytes)
    store = build_record_store(settings.record_store, engine=engine, on_delete=storage.release)
    analyzer = OpenAIRiskAnalyzer()
    worker = AnalysisWorker(
        store,
        analyzer,
        storage,
        claim_timeout=settings.analysis_claim_timeout_seconds,
    )
    sweeper = AnalysisSweeper(worker, settings.analysis_sweep_interval_seconds, settings.analysis_sweep_batch)
    app.state.file_storage = storage
    app.state.record_store = store
    app.state.analysis_worker = worker
    app.state.analysis_sweeper = sweeper
    log.info(
        "record store: %s, OPENAI_API_KEY loaded: %s",
        settings.record_store,
        "yes" if analyzer.is_configured() else "NO (analyses will fail until OPENAI_API_KEY is set)",
    )
    if settings.environment.strip().lower() == "production" and settings.secret_key == "change-me-in-production":
        log.warning("SECRET_KEY is the default value in production; set SECRET_KEY in .env")
    sweeper.start()
    yield
    sweeper.stop()


app = FastAPI(
    title="AlwayCare API",
    description="Image safety analysis: upload, background risk scoring, results and statistics",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("rate limit exceeded: path=%s detail=%s", request.url.path, exc.detail)
    return _error_response(request, 429, "Too many requests. Please wait a minute.")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(RecordError)
def record_error_handler(request: Request, exc: RecordError) -> JSONResponse:
    if isinstance(exc, InvalidTransition):
        log.warning("invalid transition: path=%s %s", request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.message or type(exc).__name__)


def _jsonable_errors(errs: list) -> list:
    # ctx içinde exception nesneleri olabilir; JSON'a yalnızca temel alanları koy
    return [{"loc": list(e.get("loc") or []), "msg": e.get("msg"), "type": e.get("type")} for e in errs]


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("Request validation error (422): path=%s method=%s", request.url.path, request.method)
    first = errs[0] if errs else {}
    field = str(first["loc"][-1]) if first.get("loc") else "body"
    rid = getattr(request.state, "request_id", None)
    body = {
        "error": f"{field}: {first.get('msg') or 'invalid value'}",
        "status_code": 422,
        "detail": _jsonable_errors(errs),
    }
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


def _token_owner(request: Request) -> int | None:
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    return owner_id_from_token(token) if scheme.lower() == "bearer" and token else None


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=True)
    try:
        with Session(engine) as db:
            db.add(ErrorLog(
                request_id=getattr(request.state, "request_id", None),
                user_id=_token_owner(request),
                endpoint=request.url.path,
                method=request.method,
                error_type=type(exc).__name__,
                error_message=str(exc)[:2000],
                stack_trace=traceback.format_exc()[:10000],
            ))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    return _error_response(request, 500, "Unexpected server error.")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(images_router)
app.include_router(analysis_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "database": "ok" if ping_db() else "error",
        "record_store": settings.record_store,
        "analyzer_configured": OpenAIRiskAnalyzer.is_configured(),
    }
