"""Booking availability resolution.

Turns the reservations of one property into the sorted set of blocked dates.

Date ranges are half-open: check_in is the first blocked night, check_out is
the departure day and stays free. Two intervals merge when they overlap or
touch (current.end >= next.start). Cancelled reservations never block.

Everything here is pure: no I/O, no module state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Iterator

from staybook.domain.errors import ValidationError


class ReservationStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


BLOCKING_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.PENDING})


@dataclass(frozen=True)
class ReservationRecord:
    """A reservation as stored by the booking subsystem.

    Dates and status are kept as read (strings are accepted) and only
    validated during resolution, so a corrupt row can be reported by name.
    """

    property_id: str
    check_in: date | str
    check_out: date | str
    status: ReservationStatus | str
    reservation_id: str | None = None

    def describe(self) -> str:
        ident = self.reservation_id or "<no id>"
        status = getattr(self.status, "value", self.status)
        return f"reservation {ident} ({self.check_in!s} -> {self.check_out!s}, {status})"


@dataclass(frozen=True, order=True)
class DateInterval:
    """[start, end) range of nights. Ordering is (start, end)."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"interval start {self.start} must be before end {self.end}")

    @property
    def nights(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class AvailabilityResult:
    property_id: str | None
    blocked_dates: tuple[date, ...] = ()


# ── Parsing ──────────────────────────────────────────────


def _parse_date(value: object, record: ReservationRecord, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValidationError(
        f"{record.describe()}: unparseable {field_name} {value!r}",
        record=record,
    )


def _parse_status(record: ReservationRecord) -> ReservationStatus:
    try:
        return ReservationStatus(record.status)
    except ValueError:
        raise ValidationError(
            f"{record.describe()}: unknown status {record.status!r}",
            record=record,
        )


def to_interval(record: ReservationRecord) -> DateInterval:
    """Validate a record and return its [check_in, check_out) interval.

    Raises:
        ValidationError: If a date is unparseable or check_in >= check_out.
    """
    check_in = _parse_date(record.check_in, record, "check_in")
    check_out = _parse_date(record.check_out, record, "check_out")
    if check_in >= check_out:
        raise ValidationError(
            f"{record.describe()}: check_in must be before check_out",
            record=record,
        )
    return DateInterval(check_in, check_out)


def blocking_intervals(
    records: Iterable[ReservationRecord],
    property_id: str | None = None,
) -> list[DateInterval]:
    """Validate records and return intervals of those that block dates.

    Cancelled records are dropped before their dates are looked at.
    """
    intervals: list[DateInterval] = []
    for record in records:
        if property_id is not None and record.property_id != property_id:
            raise ValidationError(
                f"{record.describe()}: belongs to property {record.property_id!r}, "
                f"expected {property_id!r}",
                record=record,
            )
        if _parse_status(record) not in BLOCKING_STATUSES:
            continue
        intervals.append(to_interval(record))
    return intervals


# ── Interval arithmetic ──────────────────────────────────


def merge_intervals(intervals: Iterable[DateInterval]) -> list[DateInterval]:
    """Merge overlapping or touching intervals into a minimal disjoint list."""
    merged: list[DateInterval] = []
    for interval in sorted(intervals):
        if merged and merged[-1].end >= interval.start:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = DateInterval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def expand_interval(interval: DateInterval) -> Iterator[date]:
    """Yield each night of the interval, end excluded."""
    for offset in range(interval.nights):
        yield interval.start + timedelta(days=offset)


# ── Public operations ────────────────────────────────────


def resolve(
    records: Iterable[ReservationRecord],
    *,
    property_id: str | None = None,
) -> AvailabilityResult:
    """Compute the blocked dates for one property.

    Args:
        records: Reservations in any order, cancelled ones included.
        property_id: Property the records must belong to. When omitted it is
            taken from the first record.

    Returns:
        AvailabilityResult with strictly ascending, unique blocked dates.

    Raises:
        ValidationError: On a malformed record, or records of several properties.
    """
    records = list(records)
    if property_id is None and records:
        property_id = records[0].property_id

    merged = merge_intervals(blocking_intervals(records, property_id))
    dates = {d for interval in merged for d in expand_interval(interval)}
    return AvailabilityResult(property_id=property_id, blocked_dates=tuple(sorted(dates)))


def find_overlap(
    records: Iterable[ReservationRecord],
    check_in: date,
    check_out: date,
) -> ReservationRecord | None:
    """Return the earliest blocking record overlapping [check_in, check_out).

    Overlap is strict: a stay may start on another stay's departure day.

    Raises:
        ValueError: If check_in >= check_out.
        ValidationError: On a malformed record.
    """
    requested = DateInterval(check_in, check_out)
    best: tuple[DateInterval, ReservationRecord] | None = None
    for record in records:
        if _parse_status(record) not in BLOCKING_STATUSES:
            continue
        existing = to_interval(record)
        if existing.start < requested.end and existing.end > requested.start:
            if best is None or existing < best[0]:
                best = (existing, record)
    return best[1] if best else None


def is_range_available(
    records: Iterable[ReservationRecord],
    check_in: date,
    check_out: date,
) -> bool:
    return find_overlap(records, check_in, check_out) is None
