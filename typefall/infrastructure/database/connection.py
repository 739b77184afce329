"""Database engine and session factory.

The engine is created once at startup from DATABASE_URL. Repositories receive
a ManagedSessionFactory, which closes every session, rolls back on error and
reports driver failures as StorageUnavailable so the ranking core never sees
SQLAlchemy exceptions.
"""
import logging
import os
import re
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from typefall.domain.errors import StorageUnavailable

log = logging.getLogger("typefall.storage")

_engine = None
_SessionLocal = None

# Matches a postgres(ql):// URL anywhere inside a string.
_PG_URL_RE = re.compile(r"(postgres(?:ql)?://\S+)")


def resolve_database_url(env_var: str = "DATABASE_URL") -> str:
    """Read a database URL from environment and return a clean SQLAlchemy URL.

    Handles whitespace and surrounding quotes pasted from dashboards, a full
    ``psql`` command pasted instead of the URL, and the ``postgres://`` scheme
    that SQLAlchemy rejects.
    """
    raw = os.environ.get(env_var, "").strip()

    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ('"', "'"):
        raw = raw[1:-1].strip()

    match = _PG_URL_RE.search(raw)
    url = match.group(1) if match else raw
    url = url.rstrip("'\"").strip()

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    return url


def masked_host(url: str) -> str:
    if "@" not in url:
        return url.split("?")[0] if url.startswith("sqlite") else "<no-host>"
    return url.split("@")[-1].split("?")[0]


def build_engine(url: str):
    """Create an engine; pool tuning applies to server databases only."""
    print(f"[TYPEFALL] Initialising database engine -> {masked_host(url)}")
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        pool_size=3,
        max_overflow=5,
        pool_timeout=15,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=False,
    )


def init_engine(url: str | None = None):
    """Initialise the module engine from ``url`` or DATABASE_URL."""
    global _engine, _SessionLocal

    url = url or resolve_database_url("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is empty -- cannot initialise the database.")

    _engine = build_engine(url)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_session_factory() -> "ManagedSessionFactory":
    if _SessionLocal is None:
        raise RuntimeError("Database not initialised. Call init_engine() first.")
    return ManagedSessionFactory(_SessionLocal)


def create_tables(engine=None) -> None:
    """Create all tables (idempotent)."""
    from typefall.infrastructure.database.models import Base

    engine = engine or _engine
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        raise StorageUnavailable(
            f"Could not create tables: {type(exc).__name__}"
        ) from exc
    print("[TYPEFALL] Tables verified.")


def check_health(engine=None) -> bool:
    """Lightweight connectivity probe."""
    engine = engine or _engine
    if engine is None:
        return False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        log.warning("Database health probe failed: %s", exc)
        return False


class ManagedSessionFactory:
    """Callable wrapper around a sessionmaker.

    Usage (identical to a bare sessionmaker):
        with session_factory() as session:
            ...
    """

    def __init__(self, sessionmaker_):
        self._sessionmaker = sessionmaker_

    def __call__(self):
        return self._managed_session()

    @contextmanager
    def _managed_session(self):
        session = self._sessionmaker()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            log.error("Database operation failed: %s: %s", type(exc).__name__, exc)
            raise StorageUnavailable(
                f"Database unavailable: {type(exc).__name__}"
            ) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
