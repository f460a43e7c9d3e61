"""
CareComply Database Session Management.

Single entry point for store DB initialisation plus a context manager that
gives each store call its own short-lived session (one request, one
transaction).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from carecomply.db.base import Base
from carecomply.engine.config import DatabaseConfig

logger = logging.getLogger("carecomply.db.session")

_store_session_factory: Optional[sessionmaker] = None


def create_store_engine(db_url: str, **pool_options: Any) -> Engine:
    """
    Create an engine for the store database.

    SQLite URLs (tests, local dev) get a shared in-process pool; pool sizing
    options apply to server databases only.
    """
    if db_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, **kwargs)
    return create_engine(db_url, **pool_options)


def init_store_db(
    db_url: str,
    create_tables: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    pool_pre_ping: bool = True,
) -> sessionmaker:
    """
    Initialise the store database.

    1. Creates the engine (PostgreSQL in production, SQLite in tests).
    2. Optionally runs ``Base.metadata.create_all()`` — for ``carecomply init``
       and tests.
    3. Stores the session factory as the module-level default.

    Returns:
        A ``sessionmaker`` bound to the engine, passed to the SQL stores.
    """
    global _store_session_factory

    engine = create_store_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
    )
    if create_tables:
        Base.metadata.create_all(engine)
        logger.info("Store tables created")

    _store_session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return _store_session_factory


def init_store_db_from_config(config: DatabaseConfig) -> sessionmaker:
    return init_store_db(
        config.url,
        create_tables=config.create_tables,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=config.pool_pre_ping,
    )


def get_store_session_factory() -> sessionmaker:
    if _store_session_factory is None:
        raise RuntimeError("Store DB not initialized. Call init_store_db() first.")
    return _store_session_factory


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for store DB sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            row = session.get(DocumentRecord, doc_id)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_store_db() -> None:
    """Dispose the default engine. Used during shutdown."""
    global _store_session_factory
    if _store_session_factory is not None:
        bind = _store_session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()
        _store_session_factory = None
