"""psycopg2 connections for the availability reads.

Every connection is bounded on the client and the server: libpq
connect_timeout, TCP keepalives and tcp_user_timeout on the socket, and a
Postgres statement_timeout per query. A read against a stalled or
partitioned server fails instead of pinning a request thread.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from staybook.config import Settings, get_settings

_LIBPQ_PASSWORD = re.compile(r"(^|\s)password\s*=")

KEEPALIVE_COUNT = 3


def _dsn_has_password(dsn: str) -> bool:
    """True if the DSN (URL or libpq key=value form) already carries a password."""
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return bool(_LIBPQ_PASSWORD.search(dsn))


def connect_kwargs(settings: Settings) -> dict[str, Any]:
    """libpq parameters that bound connect, idle socket and statement time.

    tcp_user_timeout (ms) covers unacknowledged writes; keepalives cover a
    peer that vanished while we wait for a reply. Both are sized so the
    socket gives up shortly after statement_timeout would have fired.
    """
    connect_s = settings.connect_timeout_seconds
    return {
        "connect_timeout": connect_s,
        "options": f"-c statement_timeout={settings.statement_timeout_ms}",
        "keepalives": 1,
        "keepalives_idle": connect_s,
        "keepalives_interval": connect_s,
        "keepalives_count": KEEPALIVE_COUNT,
        "tcp_user_timeout": settings.statement_timeout_ms + connect_s * 1000,
    }


def get_conn(settings: Settings | None = None) -> PgConnection:
    """Open a connection to DATABASE_URL with the bounds from connect_kwargs().

    DB_PASSWORD is only injected when the DSN has no password of its own.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    settings = settings or get_settings()
    dsn = settings.database_url
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    kwargs = connect_kwargs(settings)
    if settings.db_password and not _dsn_has_password(dsn):
        kwargs["password"] = settings.db_password

    return psycopg2.connect(dsn, **kwargs)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor for one unit of bookings work.

    Without conn, a fresh bounded connection is opened per call and closed
    afterwards; request handlers share nothing. A cancelled statement or a
    dropped socket raises out of the block after the rollback, so the
    repository can translate the driver error.

        with txn() as cur:
            records = select_reservations(cur, property_id)
    """
    owned = conn is None
    if owned:
        conn = get_conn()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owned:
            conn.close()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()
