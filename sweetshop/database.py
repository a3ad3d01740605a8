# sweetshop/database.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from sweetshop.core.settings import settings

logger = logging.getLogger("sweetshop.db")

# -----------------------------
# Helpers
# -----------------------------
_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:", "sqlite+pysqlite:///:memory:"}


def mask_url(url: str) -> str:
    try:
        u = make_url(url)
        if u.password:
            u = u.set(password="***")
        return u.render_as_string(hide_password=False)
    except Exception:
        return url


# -----------------------------
# Config
# -----------------------------
DATABASE_URL = (settings.DATABASE_URL or "").strip()
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL este gol. Setează o valoare validă.")

# Schema explicită doar pe PostgreSQL; SQLite nu are scheme (ar cere ATTACH).
DEFAULT_SCHEMA: Optional[str] = None if DATABASE_URL.startswith("sqlite") else (settings.DB_SCHEMA or None)

# -----------------------------
# Naming convention pentru Alembic/op.f()
# -----------------------------
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(schema=DEFAULT_SCHEMA, naming_convention=NAMING_CONVENTION)
Base = declarative_base(metadata=metadata)


# -----------------------------
# Engine factory
# -----------------------------
def _build_engine_kwargs(url: str) -> dict:
    kwargs: dict = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,
    }

    if url.startswith("sqlite"):
        # SQLite: driverul e single-thread → dezactivează check_same_thread
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory → StaticPool (altfel fiecare conexiune are DB separat)
        if url in _MEMORY_URLS:
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["poolclass"] = NullPool
    else:
        kwargs.update(
            {
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_recycle": settings.DB_POOL_RECYCLE,
                "pool_timeout": settings.DB_POOL_TIMEOUT,
                "pool_use_lifo": True,
            }
        )
        if DEFAULT_SCHEMA:
            kwargs["connect_args"] = {"options": f"-c search_path={DEFAULT_SCHEMA},public"}

    return kwargs


def build_engine(url: str) -> Engine:
    """Creează un engine configurat pentru dialectul din URL."""
    eng = create_engine(url, **_build_engine_kwargs(url))
    if url.startswith("sqlite"):
        # FK-urile (ON DELETE CASCADE) sunt oprite implicit în SQLite
        @event.listens_for(eng, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):  # pragma: no cover - trivial
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return eng


def make_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False → obiectele rămân utilizabile după commit
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


engine: Engine = build_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: o sesiune SQLAlchemy per request, închisă garantat.
    Face rollback dacă handler-ul ridică excepție; commit-ul e treaba stratului crud.
    """
    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager pentru scripturi/servicii (non-FastAPI).
        with session_scope() as db:
            db.add(obj)
    """
    db: Session = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _ensure_schema(bind: Engine) -> None:
    if DEFAULT_SCHEMA and bind.dialect.name == "postgresql":
        with bind.begin() as conn:
            conn.exec_driver_sql(f'CREATE SCHEMA IF NOT EXISTS "{DEFAULT_SCHEMA}"')


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Creează tabelele din modele (create_all). În producție folosește Alembic
    și setează CREATE_TABLES_ON_STARTUP=0.
    """
    bind = bind or engine
    _ensure_schema(bind)
    from sweetshop import models  # noqa: F401  (înregistrează modelele pe metadata)
    Base.metadata.create_all(bind=bind)
    logger.info("Tables ensured on %s", mask_url(str(bind.url)))


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "build_engine",
    "make_session_factory",
    "get_db",
    "session_scope",
    "init_db",
    "mask_url",
]
