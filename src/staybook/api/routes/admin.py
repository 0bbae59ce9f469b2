"""Admin-only reservation inspection (mounted with APP_ROLE=admin)."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from staybook.api.rbac import require_capability
from staybook.api.routes.availability import error_status, get_availability_service
from staybook.domain.availability import ReservationRecord
from staybook.domain.users import Capability, User
from staybook.services.availability_service import AvailabilityQueryService

router = APIRouter(prefix="/admin", tags=["admin"])


def _jsonable(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    return getattr(value, "value", value)


def _serialize(record: ReservationRecord) -> dict:
    return {
        "id": record.reservation_id,
        "checkIn": _jsonable(record.check_in),
        "checkOut": _jsonable(record.check_out),
        "status": _jsonable(record.status),
    }


@router.get("/properties/{property_id}/reservations")
def list_property_reservations(
    property_id: str,
    user: User = Depends(require_capability(Capability.VIEW_RESERVATIONS)),
    service: AvailabilityQueryService = Depends(get_availability_service),
):
    """All stored reservations of a property, cancelled ones included.

    Rows are returned as stored so malformed data can be inspected.
    """
    result = service.list_reservations(property_id)
    if not result.ok:
        return JSONResponse(
            status_code=error_status(result.error),
            content={"error": result.error.message, "errorCode": result.error.code},
        )

    return {
        "propertyId": property_id.strip().lower(),
        "reservations": [_serialize(r) for r in result.value],
    }
