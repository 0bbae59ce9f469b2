"""Bookings repository - read access to reservation rows.

Uses raw SQL with psycopg2 (no ORM). Rows are returned for every status,
cancelled included: deciding what blocks a date is the resolver's job.

Driver errors are translated here so callers only ever see
RepositoryTimeoutError or RepositoryUnavailableError.
"""

from __future__ import annotations

from typing import Iterable, Protocol

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from staybook.domain.availability import ReservationRecord
from staybook.infra.db import fetchall, txn
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)


class RepositoryError(Exception):
    pass


class RepositoryUnavailableError(RepositoryError):
    """Connection refused, dropped, or store not configured."""


class RepositoryTimeoutError(RepositoryError):
    """Connect or statement timeout elapsed."""


class BookingRepository(Protocol):
    def fetch_active_reservations(self, property_id: str) -> list[ReservationRecord]:
        ...


def select_reservations(cur: PgCursor, property_id: str) -> list[ReservationRecord]:
    """Load all reservations of a property, ordered by check-in.

    Dates are passed through untouched (the column may hold text in older
    schemas); the resolver validates them.
    """
    rows = fetchall(
        cur,
        """
        SELECT id, property_id, check_in, check_out, status
        FROM bookings
        WHERE property_id = %s
        ORDER BY check_in, check_out
        """,
        (property_id,),
    )
    return [
        ReservationRecord(
            reservation_id=str(row[0]),
            property_id=str(row[1]),
            check_in=row[2],
            check_out=row[3],
            status=row[4],
        )
        for row in rows
    ]


def _is_timeout(exc: psycopg2.Error) -> bool:
    if isinstance(exc, pg_errors.QueryCanceled):
        return True
    if not isinstance(exc, (psycopg2.OperationalError, psycopg2.InterfaceError)):
        return False
    # connect_timeout: "timeout expired"; keepalives / tcp_user_timeout: "Connection timed out"
    message = str(exc).lower()
    return "timeout" in message or "timed out" in message


class PostgresBookingRepository:
    """BookingRepository backed by the bookings table."""

    def fetch_active_reservations(self, property_id: str) -> list[ReservationRecord]:
        try:
            with txn() as cur:
                return select_reservations(cur, property_id)
        except RuntimeError as exc:
            # DATABASE_URL missing
            raise RepositoryUnavailableError(str(exc)) from exc
        except psycopg2.Error as exc:
            kind = "timeout" if _is_timeout(exc) else "unavailable"
            logger.warning(
                "bookings query failed",
                extra={
                    "extra_fields": safe_log_context(
                        property_id=property_id,
                        kind=kind,
                        error_class=type(exc).__name__,
                        detail=str(exc).strip(),
                    )
                },
            )
            if kind == "timeout":
                raise RepositoryTimeoutError(str(exc)) from exc
            raise RepositoryUnavailableError(str(exc)) from exc


class InMemoryBookingRepository:
    """BookingRepository over a fixed list of records."""

    def __init__(self, records: Iterable[ReservationRecord] = ()) -> None:
        self._records = list(records)

    def add(self, record: ReservationRecord) -> None:
        self._records.append(record)

    def fetch_active_reservations(self, property_id: str) -> list[ReservationRecord]:
        return [r for r in self._records if r.property_id == property_id]
