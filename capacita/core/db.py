from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from flask import g
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from capacita.core.settings import settings


def engine_options(url: str) -> Dict[str, Any]:
    """Engine keyword arguments for the given URL (SQLite needs a shared pool)."""

    options: Dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        options.update(
            {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        )
        return options

    options.update(
        {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_timeout": settings.db_pool_timeout,
            "pool_recycle": settings.db_pool_recycle,
            "pool_use_lifo": True,
        }
    )
    return options


engine = create_engine(settings.url, **engine_options(settings.url))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

_session_factory: Callable[[], Session] = SessionLocal
_session_override: Optional[Session] = None


def ensure_schema() -> None:
    """Create missing tables. Migrations own the schema in production."""

    import capacita.models  # noqa: F401  # register every mapper
    from capacita.models.base import Base

    Base.metadata.create_all(bind=engine)


def set_session_factory(factory: Callable[[], Session]) -> None:
    global _session_factory
    _session_factory = factory


def reset_session_factory() -> None:
    global _session_factory
    _session_factory = SessionLocal


def set_db_session_override(session: Session | None) -> None:
    """Pin every `get_db()` call to one session (tests)."""

    global _session_override
    _session_override = session


def clear_db_session_override() -> None:
    set_db_session_override(None)


def get_db() -> Session:
    """Session bound to the current Flask request."""

    if _session_override is not None:
        return _session_override

    if "db_session" not in g:
        g.db_session = _session_factory()
    return g.db_session


def close_db(_=None) -> None:
    if _session_override is not None:
        return

    db: Optional[Session] = g.pop("db_session", None)
    if db is not None:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Standalone session for scripts: commit on success, rollback on error."""

    session = _session_override or _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        if session is not _session_override:
            session.close()


def dialect_insert(session: Session):
    """``insert`` construct with ON CONFLICT support for the bound dialect."""

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Upsert não suportado em {dialect}")
    return insert
