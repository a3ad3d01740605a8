# sweetshop/main.py
from __future__ import annotations

import time
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple, cast

from fastapi import FastAPI, Depends, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sweetshop.core.logging import setup_logging
from sweetshop.core.settings import settings
from sweetshop.crud import user as user_crud
from sweetshop.crud.sweet import InsufficientStockError, StockLimitError, SweetNotFoundError
from sweetshop.crud.user import DuplicateUserError
from sweetshop.database import DEFAULT_SCHEMA, engine, get_db, init_db, mask_url, session_scope
from sweetshop.routers.auth import router as auth_router
from sweetshop.routers.sweet import router as sweets_router
from sweetshop.seed import seed_all

# --- Logging ---
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("sweetshop")

APP_STARTED_MONO = time.monotonic()
APP_STARTED_TS = int(time.time())
ALEMBIC_VERSION_TABLE = "alembic_version"

HEALTH_MESSAGE = "Sweet Shop API is running"

tags_metadata = [
    {"name": "health", "description": "Liveness/Readiness checks"},
    {"name": "auth", "description": "Register, login & sessions"},
    {"name": "sweets", "description": "Catalog CRUD, search & stock"},
]


def _get_req_id_from_headers(request: Request) -> str:
    # Prefer X-Request-ID, apoi X-Correlation-ID; dacă lipsesc, generează unul.
    return (
        request.headers.get("x-request-id")
        or request.headers.get("x-correlation-id")
        or uuid.uuid4().hex[:12]
    )


def _error(request: Request, code: int, detail: Any, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"detail": detail}
    content.update(extra)
    return JSONResponse(
        status_code=code,
        content=content,
        headers={"X-Request-ID": _get_req_id_from_headers(request)},
    )


# --- Middleware func (înregistrat după crearea app) ---
async def request_context_mw(request: Request, call_next):
    """
    - Generează/propagă X-Request-ID
    - Aplică headers de securitate + HSTS (opțional)
    - Limitează mărimea corpului când Content-Length e disponibil
    - Server-Timing / X-Process-Time
    """
    req_id = _get_req_id_from_headers(request)

    # Body-size guard (non-intruziv, pe Content-Length)
    if settings.MAX_BODY_SIZE_BYTES > 0:
        cl = request.headers.get("content-length")
        if cl is not None and cl.isdigit() and int(cl) > settings.MAX_BODY_SIZE_BYTES:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": "Payload too large", "max_bytes": settings.MAX_BODY_SIZE_BYTES},
                headers={"X-Request-ID": req_id},
            )

    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    response.headers.setdefault("X-Request-ID", req_id)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cache-Control", "no-store")
    response.headers.setdefault("X-App-Version", settings.APP_VERSION)
    if settings.ENABLE_HSTS:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")

    response.headers.setdefault("Server-Timing", f"app;dur={duration_ms:.1f}")
    response.headers.setdefault("X-Process-Time", f"{duration_ms:.1f}ms")
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: tabele, seed, curățenie sesiuni expirate, sanity check DB
    logger.info("Starting %s %s (db=%s)", settings.APP_TITLE, settings.APP_VERSION, mask_url(str(engine.url)))
    try:
        if settings.CREATE_TABLES_ON_STARTUP:
            init_db()
        with session_scope() as db:
            db.execute(text("SELECT 1"))
            if settings.SEED_ON_STARTUP:
                seed_all(db)
            purged = user_crud.delete_expired_sessions(db)
            if purged:
                logger.info("Purged %s expired sessions", purged)
        logger.info("DB startup check OK")
    except SQLAlchemyError:
        logger.exception("DB startup check FAILED")

    yield

    engine.dispose()
    logger.info("Shutdown complete")


_disable_docs = settings.DISABLE_DOCS

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    root_path=settings.ROOT_PATH or "",
    docs_url=None if _disable_docs else "/docs",
    redoc_url=None if _disable_docs else "/redoc",
    openapi_url=None if _disable_docs else "/openapi.json",
)

app.middleware("http")(request_context_mw)
app.add_middleware(GZipMiddleware, minimum_size=1024)

# Trusted hosts (opțional): TRUSTED_HOSTS="localhost,127.0.0.1,.example.com"
if settings.trusted_hosts:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=cast(Sequence[str], settings.trusted_hosts))

# CORS din env: CORS_ORIGINS="http://localhost:3000,https://example.com"
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count", "X-Request-ID", "Server-Timing", "X-Process-Time", "X-App-Version"],
    )


# --- Exception handlers ---
def _validation_message(errors: List[Dict[str, Any]]) -> str:
    """Mesaj lizibil din prima eroare pydantic (ex: 'price: Input should be ...')."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = str(first.get("msg", "Invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{loc}: {msg}" if loc else msg


@app.exception_handler(RequestValidationError)
async def _validation_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    return _error(request, status.HTTP_400_BAD_REQUEST, _validation_message(errors), errors=errors)


@app.exception_handler(DuplicateUserError)
async def _dup_user_handler(request: Request, exc: DuplicateUserError):
    return _error(request, status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(SweetNotFoundError)
async def _not_found_handler(request: Request, exc: SweetNotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(InsufficientStockError)
@app.exception_handler(StockLimitError)
async def _stock_handler(request: Request, exc: Exception):
    return _error(request, status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(IntegrityError)
async def _integrity_handler(request: Request, exc: IntegrityError):
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    mapping = {
        "23505": (status.HTTP_409_CONFLICT, "Unique constraint violated."),
        "23503": (status.HTTP_409_CONFLICT, "Foreign key violation."),
        "23514": (status.HTTP_400_BAD_REQUEST, "Check constraint violated."),
        "23502": (status.HTTP_400_BAD_REQUEST, "Not-null constraint violated."),
    }
    if pgcode in mapping:
        code, msg = mapping[pgcode]
        return _error(request, code, msg, pgcode=pgcode)
    # SQLite nu are SQLSTATE; ne uităm în mesaj
    if "UNIQUE constraint failed" in str(orig or exc):
        return _error(request, status.HTTP_409_CONFLICT, "Unique constraint violated.")
    return _error(request, status.HTTP_400_BAD_REQUEST, "Integrity error.")


# Prinde 404/405 Starlette și răspunde JSON unitar
@app.exception_handler(StarletteHTTPException)
async def _starlette_http_exc_handler(request: Request, exc: StarletteHTTPException):
    headers = dict(exc.headers or {})
    headers.setdefault("X-Request-ID", _get_req_id_from_headers(request))
    content: Dict[str, Any] = {"detail": exc.detail}
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        content["path"] = str(request.url.path)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def _http_exc_handler(request: Request, exc: HTTPException):
    headers = dict(exc.headers or {})
    headers.setdefault("X-Request-ID", _get_req_id_from_headers(request))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(Exception)
async def _unhandled_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


# --- Helpers Alembic/health ---
def _get_db_alembic_version(db: Session) -> Tuple[Optional[str], bool]:
    table = f'"{DEFAULT_SCHEMA}"."{ALEMBIC_VERSION_TABLE}"' if DEFAULT_SCHEMA else ALEMBIC_VERSION_TABLE
    try:
        version = db.execute(text(f"SELECT version_num FROM {table}")).scalar_one_or_none()
        return version, True
    except SQLAlchemyError:
        db.rollback()
        return None, False


# --- Routes: health ---
@app.get("/", tags=["health"])
def root():
    return {"name": settings.APP_TITLE, "version": settings.APP_VERSION}


@app.get("/__version__", tags=["health"])
def version_meta():
    return {"app_version": settings.APP_VERSION, "started_at": APP_STARTED_TS}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok", "message": HEALTH_MESSAGE}


@app.get("/health/uptime", tags=["health"])
def health_uptime():
    return {"uptime_seconds": round(time.monotonic() - APP_STARTED_MONO, 3), "started_at": APP_STARTED_TS}


@app.get("/health/db", tags=["health"])
def health_db(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("DB health check failed")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="DB not ready")
    return {"status": "ok", "db": "up", "dialect": db.get_bind().dialect.name}


@app.get("/health/migrations", tags=["health"])
def health_migrations(db: Session = Depends(get_db)):
    version, present = _get_db_alembic_version(db)
    return {"alembic_version": version, "present": present}


# --- Routers ---
app.include_router(auth_router)
app.include_router(sweets_router)
