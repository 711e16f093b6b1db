"""
core/db.py -- Engine construction and error translation shared by all stores.

SQLAlchemy provides a database-agnostic abstraction: swapping SQLite for
PostgreSQL is a connection string change, not a rewrite. Both
auth/store.py and articles/store.py build their engines here so the SQLite
threading and WAL settings are applied in one place.

Layer rule: core/ is the kernel. No imports from api/, auth/, or articles/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StorageFailure

logger = logging.getLogger("pressroom.store")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine, applying SQLite thread and WAL settings when relevant."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # Handlers run in a worker thread pool; one connection may be used
        # from a thread other than the one that opened it.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors raised inside the block into StorageFailure."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", operation, exc)
        raise StorageFailure(f"{operation}: {exc}") from exc
