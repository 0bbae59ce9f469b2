"""Error taxonomy for availability queries.

Service-level errors are returned as values (see QueryResult), not raised, so
"no bookings" and "could not determine bookings" can never be confused. Each
error carries a stable machine-readable code and whether a retry may help.
"""

from __future__ import annotations


class ValidationError(Exception):
    """A reservation record could not be resolved (bad dates, unknown status...).

    Raised by the resolver. Stored data normally passes validation, so at the
    service boundary this becomes a DataIntegrityError.
    """

    def __init__(self, message: str, *, record: object | None = None) -> None:
        self.record = record
        super().__init__(message)


class AvailabilityError(Exception):
    """Base for errors reported by the availability query service."""

    code = "availability_error"
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInput(AvailabilityError):
    """Caller supplied a malformed identifier or date range."""

    code = "invalid_input"


class UpstreamUnavailable(AvailabilityError):
    """The booking store could not be reached."""

    code = "upstream_unavailable"
    retryable = True


class UpstreamTimeout(AvailabilityError):
    """The booking store did not answer within the configured timeout."""

    code = "upstream_timeout"
    retryable = True


class DataIntegrityError(AvailabilityError):
    """Stored reservations are malformed; raised from a ValidationError."""

    code = "data_integrity"
