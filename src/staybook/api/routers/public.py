"""Public-facing routes (always mounted)."""

from fastapi import APIRouter

from staybook.api.routes import availability

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(availability.router)
