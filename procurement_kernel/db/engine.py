"""
Module: procurement_kernel.db.engine
Responsibility: process-wide engine and session factory, plus the
    ``session_scope`` unit of work every workflow operation runs inside.
Architecture position: Kernel > DB.  Imports db/base (lazily, for schema
    management), the exception hierarchy and logging.

A workflow operation is one transaction.  Either all of its writes
(line transitions, notifications, stock balance changes) commit together,
or none of them do.  Store exceptions are translated on the way out:

    unique-key IntegrityError -> ConcurrentModificationError (409)
    other SQLAlchemyError     -> DependencyFailureError      (503)
    anything else             -> re-raised as is, after rollback
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from procurement_kernel.exceptions import (
    ConcurrentModificationError,
    DependencyFailureError,
)
from procurement_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Database not initialized; call init_engine_from_url() first"


def _engine_options(url: URL, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if url.get_backend_name() != "sqlite":
        return {"pool_size": pool_size, "max_overflow": max_overflow, "pool_pre_ping": True}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    # an in-memory database lives only as long as its single connection
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> Engine:
    """Create the engine and session factory, replacing any previous pair.

    ``pool_size`` and ``max_overflow`` only apply to pooled server backends;
    SQLite ignores them.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    _engine = create_engine(url, echo=echo, **_engine_options(url, pool_size, max_overflow))
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={
        "dialect": _engine.dialect.name,
        "database": url.database,
        "echo": echo,
    })
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


_UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_VIOLATION_MARKERS = ("unique constraint", "duplicate key", "duplicate entry")


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == _UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


def _translate(exc: Exception) -> Exception:
    if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
        return ConcurrentModificationError(
            f"Write rejected by uniqueness constraint: {exc.orig}"
        )
    if isinstance(exc, SQLAlchemyError):
        return DependencyFailureError(f"Store operation failed: {exc}")
    return exc


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Run the enclosed block as one transaction.

    Commits when the block finishes, including the flush at commit time, so
    a constraint violation raised by ``commit()`` is translated like one
    raised inside the block.  The session is closed on every path.
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        translated = _translate(exc)
        if translated is exc:
            raise
        raise translated from exc
    else:
        logger.debug("transaction_committed")
    finally:
        session.close()


def create_tables() -> None:
    """Create every table registered by procurement_kernel.models."""
    from procurement_kernel.db.base import Base
    import procurement_kernel.models  # noqa: F401  registers all tables

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from procurement_kernel.db.base import Base
    import procurement_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
