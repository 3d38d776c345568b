"""
db/connection.py
-----------------
Connection pool for the trip/block store (PostgreSQL via psycopg2).

A "save trip" is many short transactions, one per block plus one for the
header, so every call to transaction() borrows a pooled connection for
exactly one unit of work:

    with transaction() as conn:                  # commit / rollback
        block_repo.insert_block(conn, block)

    with transaction(readonly=True) as conn:     # saved-trip listings
        trip_repo.list_trips(conn)

A connection that failed at the transport level (server restart, dropped
socket) is discarded instead of going back to the pool, so the next block
in the same save gets a fresh one.

Settings (config.py): POSTGRES_HOST / PORT / DB / USER / PASSWORD,
POSTGRES_MIN_CONN, POSTGRES_MAX_CONN, POSTGRES_STATEMENT_TIMEOUT_MS.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg2
import psycopg2.extensions
import psycopg2.pool

from tripcanvas import config

logger = logging.getLogger(__name__)

APPLICATION_NAME = "tripcanvas"

_pool: psycopg2.pool.ThreadedConnectionPool | None = None

# transport-level failures: the connection itself is unusable afterwards
_BROKEN = (psycopg2.OperationalError, psycopg2.InterfaceError)


def _open_pool() -> psycopg2.pool.ThreadedConnectionPool:
    logger.info(
        "Opening Postgres pool %s@%s:%s/%s (%d-%d connections)",
        config.POSTGRES_USER, config.POSTGRES_HOST, config.POSTGRES_PORT,
        config.POSTGRES_DB, config.POSTGRES_MIN_CONN, config.POSTGRES_MAX_CONN,
    )
    return psycopg2.pool.ThreadedConnectionPool(
        minconn=config.POSTGRES_MIN_CONN,
        maxconn=config.POSTGRES_MAX_CONN,
        host=config.POSTGRES_HOST,
        port=config.POSTGRES_PORT,
        dbname=config.POSTGRES_DB,
        user=config.POSTGRES_USER,
        password=config.POSTGRES_PASSWORD,
        application_name=APPLICATION_NAME,
        options=f"-c statement_timeout={config.POSTGRES_STATEMENT_TIMEOUT_MS}",
    )


def get_pool() -> psycopg2.pool.ThreadedConnectionPool:
    global _pool
    if _pool is None or _pool.closed:
        _pool = _open_pool()
    return _pool


@contextmanager
def transaction(readonly: bool = False) -> Iterator[psycopg2.extensions.connection]:
    """
    One unit of work on a pooled connection.

    Commits on clean exit, rolls back and re-raises otherwise.  With
    ``readonly`` the session rejects writes for the duration of the block.
    """
    pool = get_pool()
    conn = pool.getconn()
    broken = False
    try:
        if readonly:
            conn.readonly = True
        yield conn
        conn.commit()
    except _BROKEN:
        broken = True
        logger.warning("Discarding broken Postgres connection")
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        if readonly and not broken and not conn.closed:
            conn.readonly = False
        pool.putconn(conn, close=broken or bool(conn.closed))


def database_available() -> bool:
    """True when a trivial query round-trips; never raises."""
    try:
        with transaction(readonly=True) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        return True
    except psycopg2.Error as exc:
        logger.warning("Postgres unavailable: %s", exc)
        return False


def close_pool() -> None:
    """Close every pooled connection (application shutdown)."""
    global _pool
    if _pool is not None and not _pool.closed:
        _pool.closeall()
        logger.info("Postgres pool closed")
    _pool = None
