"""Database engine + session management.

Repositories open sessions through :func:`session_scope`, which translates
driver level failures into :class:`StoreUnavailable` so callers can tell an
infrastructure fault apart from a business rejection.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from .models import Base

_engine: Engine | None = None
_SessionFactory: scoped_session[Session] | None = None

# Seconds a SQLite writer waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 15


class StoreUnavailable(Exception):
    """The persistent store could not complete an operation."""


def _normalize_url(url: str) -> str:
    # Postgres URLs always go through psycopg v3
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://") and "+" not in url.split("://", 1)[1].split("@", 1)[0]:
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def _build_engine(database_url: str) -> Engine:
    url = _normalize_url(database_url)
    connect_args = {"timeout": SQLITE_BUSY_TIMEOUT} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, echo=False, connect_args=connect_args)


def init_engine(database_url: str, force: bool = False) -> Engine:
    """Create the global engine once; ``force`` swaps it for a new URL (tests)."""
    global _engine, _SessionFactory
    if _engine is not None and not force:
        return _engine
    if _SessionFactory is not None:
        _SessionFactory.remove()
    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(database_url)
    _SessionFactory = scoped_session(sessionmaker(bind=_engine, autoflush=False, autocommit=False))
    return _engine


def remove_session(_exc: BaseException | None = None) -> None:
    """Release the thread's scoped session; registered as an app teardown."""
    if _SessionFactory is not None:
        _SessionFactory.remove()


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("DB not initialized; call init_engine first")
    return _SessionFactory()


@contextmanager
def session_scope() -> Iterator[Session]:
    db = get_session()
    try:
        yield db
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        cause = getattr(exc, "orig", None) or exc
        raise StoreUnavailable(f"{exc.__class__.__name__}: {cause}") from exc
    finally:
        db.close()


def create_all() -> None:  # dev helper ONLY for fresh ephemeral DBs (tests, scratch). Use Alembic in normal flows.
    if _engine is None:
        raise RuntimeError("Engine not initialized")
    Base.metadata.create_all(_engine)

