"""
Pooled PostgreSQL connections for the response store and the audit log.

Store and audit calls are synchronous psycopg2 calls made directly from the
async request handlers, so a slow query holds the event loop for its
duration. The pool is thread-safe so the CLI and any worker threads can
share it.

Usage:
    from onboarding_vault.db import get_connection

    with get_connection() as conn:
        conn.cursor().execute("SELECT 1")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

from onboarding_vault.config import DatabaseConfig, get_config

logger = logging.getLogger(__name__)

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 10

_pool: ThreadedConnectionPool | None = None
_lock = threading.Lock()


def _open_pool(db: DatabaseConfig) -> ThreadedConnectionPool:
    logger.info("Opening onboarding DB pool %s@%s/%s (max %d)", db.user, db.host or "socket", db.name, MAX_CONNECTIONS)
    try:
        return ThreadedConnectionPool(MIN_CONNECTIONS, MAX_CONNECTIONS, **db.dict)
    except psycopg2.OperationalError as e:
        raise ConnectionError(
            f"PostgreSQL unreachable at {db.host or 'local socket'}:{db.port}/{db.name}; "
            f"check the ONBOARDING_DB_* variables"
        ) from e


def get_pool() -> ThreadedConnectionPool:
    """Return the shared pool, opening it on first use."""
    global _pool
    with _lock:
        if _pool is None or _pool.closed:
            _pool = _open_pool(get_config().db)
        return _pool


@contextmanager
def get_connection() -> Iterator[psycopg2.extensions.connection]:
    """Borrow a connection for one transaction.

    Commits when the block exits cleanly, rolls back when it raises (including
    a ConflictError raised by the caller), and always hands the connection back.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    with _lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
