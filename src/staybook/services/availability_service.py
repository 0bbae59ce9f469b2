"""Availability query service - boundary between callers and the resolver.

Rules:
- property_id must be a UUID; anything else is InvalidInput.
- One repository read per query, no retries, no caching.
- Repository failures become UpstreamUnavailable / UpstreamTimeout.
- Resolver ValidationError becomes DataIntegrityError.
- Errors are returned inside QueryResult, never raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Generic, TypeVar

from staybook.domain.availability import (
    AvailabilityResult,
    ReservationRecord,
    blocking_intervals,
    find_overlap,
    resolve,
)
from staybook.domain.errors import (
    AvailabilityError,
    DataIntegrityError,
    InvalidInput,
    UpstreamTimeout,
    UpstreamUnavailable,
    ValidationError,
)
from staybook.infra.repositories.bookings_repository import (
    BookingRepository,
    PostgresBookingRepository,
    RepositoryTimeoutError,
    RepositoryUnavailableError,
)
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)

T = TypeVar("T")

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Either a value or an AvailabilityError, never both."""

    value: T | None = None
    error: AvailabilityError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> QueryResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: AvailabilityError) -> QueryResult[T]:
        return cls(error=error)


@dataclass(frozen=True)
class RangeAvailability:
    property_id: str
    check_in: date
    check_out: date
    available: bool
    conflicting_reservation_id: str | None = None


def normalize_property_id(property_id: object) -> str:
    """Strip and lowercase a property UUID.

    Raises:
        InvalidInput: If the value is empty or not a canonical UUID.
    """
    if not isinstance(property_id, str) or not property_id.strip():
        raise InvalidInput("property_id is required")
    candidate = property_id.strip()
    if not _UUID_PATTERN.match(candidate):
        raise InvalidInput("property_id must be a UUID")
    return candidate.lower()


class AvailabilityQueryService:
    """Answers availability queries for a property."""

    def __init__(self, repository: BookingRepository | None = None) -> None:
        self._repository = repository or PostgresBookingRepository()

    def _fetch(self, property_id: str) -> list[ReservationRecord]:
        try:
            return self._repository.fetch_active_reservations(property_id)
        except RepositoryTimeoutError:
            raise UpstreamTimeout("booking store timed out")
        except RepositoryUnavailableError:
            raise UpstreamUnavailable("booking store unavailable")

    def _run(
        self,
        operation: str,
        raw_property_id: object,
        body: Callable[[str], T],
    ) -> QueryResult[T]:
        property_id: str | None = None
        try:
            property_id = normalize_property_id(raw_property_id)
            return QueryResult.success(body(property_id))
        except ValidationError as exc:
            error: AvailabilityError = DataIntegrityError(
                f"stored reservations are invalid: {exc}"
            )
            error.__cause__ = exc
        except AvailabilityError as exc:
            error = exc

        log = logger.error if isinstance(error, DataIntegrityError) else logger.warning
        # an id that failed validation is caller input and goes out redacted
        log(
            f"{operation} failed",
            extra={
                "extra_fields": safe_log_context(
                    property_id=property_id if property_id is not None else raw_property_id,
                    error_code=error.code,
                    retryable=error.retryable,
                )
            },
        )
        return QueryResult.failure(error)

    def get_property_booked_dates(self, property_id: object) -> QueryResult[AvailabilityResult]:
        """Blocked dates of a property, ascending and unique.

        No reservations is a successful, empty result.
        """

        def body(pid: str) -> AvailabilityResult:
            records = self._fetch(pid)
            result = resolve(records, property_id=pid)
            logger.info(
                "booked dates resolved",
                extra={
                    "extra_fields": {
                        "property_id": pid,
                        "records": len(records),
                        "blocked_dates": len(result.blocked_dates),
                    }
                },
            )
            return result

        return self._run("get_property_booked_dates", property_id, body)

    def check_property_availability(
        self,
        property_id: object,
        check_in: date,
        check_out: date,
    ) -> QueryResult[RangeAvailability]:
        """Whether [check_in, check_out) is free of blocking reservations."""

        def body(pid: str) -> RangeAvailability:
            if check_in >= check_out:
                raise InvalidInput("check_in must be before check_out")
            records = self._fetch(pid)
            # Validate every row, not only the ones that overlap
            blocking_intervals(records, pid)
            conflict = find_overlap(records, check_in, check_out)
            return RangeAvailability(
                property_id=pid,
                check_in=check_in,
                check_out=check_out,
                available=conflict is None,
                conflicting_reservation_id=conflict.reservation_id if conflict else None,
            )

        return self._run("check_property_availability", property_id, body)

    def list_reservations(self, property_id: object) -> QueryResult[list[ReservationRecord]]:
        """Raw reservations of a property, cancelled included."""
        return self._run("list_reservations", property_id, self._fetch)
