"""Availability endpoints consumed by the property calendar.

Provides:
- GET /properties/{property_id}/booked-dates: blocked dates for the calendar
- GET /properties/{property_id}/availability: is a stay range free?

Bodies always carry "error" (null on success) so the browser hook can tell
"no bookings" apart from "could not load bookings".
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from staybook.domain.errors import AvailabilityError
from staybook.services.availability_service import AvailabilityQueryService

router = APIRouter(prefix="/properties", tags=["availability"])


# ── Schemas ───────────────────────────────────────────────


class BookedDatesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(alias="propertyId")
    blocked_dates: list[date] = Field(alias="blockedDates")
    error: str | None = None


class RangeAvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(alias="propertyId")
    check_in: date = Field(alias="checkIn")
    check_out: date = Field(alias="checkOut")
    available: bool
    conflicting_reservation_id: str | None = Field(default=None, alias="conflictingReservationId")
    error: str | None = None

_STATUS_BY_CODE = {
    "invalid_input": 422,
    "upstream_unavailable": 503,
    "upstream_timeout": 504,
    "data_integrity": 500,
}


def get_availability_service() -> AvailabilityQueryService:
    """Dependency hook; tests override it with an in-memory repository."""
    return AvailabilityQueryService()


def error_status(error: AvailabilityError) -> int:
    return _STATUS_BY_CODE.get(error.code, 500)


def _error_response(error: AvailabilityError, body: dict) -> JSONResponse:
    body.update({"error": error.message, "errorCode": error.code, "retryable": error.retryable})
    return JSONResponse(status_code=error_status(error), content=body)


@router.get("/{property_id}/booked-dates", response_model=BookedDatesResponse)
def get_booked_dates(
    property_id: str,
    service: AvailabilityQueryService = Depends(get_availability_service),
):
    """Blocked calendar dates of a property (ISO-8601, ascending)."""
    result = service.get_property_booked_dates(property_id)
    if not result.ok:
        return _error_response(
            result.error, {"propertyId": property_id, "blockedDates": []}
        )

    return BookedDatesResponse(
        property_id=result.value.property_id,
        blocked_dates=list(result.value.blocked_dates),
    )


@router.get("/{property_id}/availability", response_model=RangeAvailabilityResponse)
def get_range_availability(
    property_id: str,
    check_in: date = Query(..., description="Arrival date (YYYY-MM-DD, inclusive)"),
    check_out: date = Query(..., description="Departure date (YYYY-MM-DD, exclusive)"),
    service: AvailabilityQueryService = Depends(get_availability_service),
):
    """Whether the property is free for [check_in, check_out)."""
    result = service.check_property_availability(property_id, check_in, check_out)
    if not result.ok:
        return _error_response(
            result.error,
            {
                "propertyId": property_id,
                "checkIn": check_in.isoformat(),
                "checkOut": check_out.isoformat(),
                "available": False,
            },
        )

    value = result.value
    return RangeAvailabilityResponse(
        property_id=value.property_id,
        check_in=value.check_in,
        check_out=value.check_out,
        available=value.available,
        conflicting_reservation_id=value.conflicting_reservation_id,
    )
