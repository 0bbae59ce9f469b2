"""Tests for the public availability endpoints."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from staybook.api.factory import create_app
from staybook.api.routes.availability import get_availability_service
from staybook.domain.availability import ReservationRecord
from staybook.infra.repositories.bookings_repository import (
    InMemoryBookingRepository,
    RepositoryTimeoutError,
    RepositoryUnavailableError,
)
from staybook.services.availability_service import AvailabilityQueryService

PROP = "5b1f0c2e-8d4a-4c3b-9e2f-0a1b2c3d4e5f"


def _client_for(repo) -> TestClient:
    app = create_app(role="public")
    app.dependency_overrides[get_availability_service] = lambda: AvailabilityQueryService(repo)
    return TestClient(app)


@pytest.fixture
def client():
    return _client_for(
        InMemoryBookingRepository([
            ReservationRecord(PROP, date(2024, 3, 1), date(2024, 3, 5), "confirmed", "r1"),
            ReservationRecord(PROP, date(2024, 3, 4), date(2024, 3, 8), "confirmed", "r2"),
            ReservationRecord(PROP, date(2024, 3, 20), date(2024, 3, 25), "cancelled", "r3"),
        ])
    )


def _failing(exc) -> TestClient:
    repo = MagicMock()
    repo.fetch_active_reservations.side_effect = exc
    return _client_for(repo)


class TestBookedDates:
    def test_success_shape(self, client):
        response = client.get(f"/properties/{PROP}/booked-dates")

        assert response.status_code == 200
        assert response.json() == {
            "propertyId": PROP,
            "blockedDates": [
                "2024-03-01",
                "2024-03-02",
                "2024-03-03",
                "2024-03-04",
                "2024-03-05",
                "2024-03-06",
                "2024-03-07",
            ],
            "error": None,
        }

    def test_no_bookings_is_empty_list(self):
        client = _client_for(InMemoryBookingRepository())

        response = client.get(f"/properties/{PROP}/booked-dates")

        assert response.status_code == 200
        assert response.json()["blockedDates"] == []
        assert response.json()["error"] is None

    def test_invalid_property_id(self, client):
        response = client.get("/properties/not-a-uuid/booked-dates")

        assert response.status_code == 422
        body = response.json()
        assert body["blockedDates"] == []
        assert body["errorCode"] == "invalid_input"
        assert body["error"]

    def test_timeout_is_504(self):
        response = _failing(RepositoryTimeoutError("slow")).get(f"/properties/{PROP}/booked-dates")

        assert response.status_code == 504
        assert response.json()["errorCode"] == "upstream_timeout"
        assert response.json()["retryable"] is True

    def test_unavailable_is_503(self):
        response = _failing(RepositoryUnavailableError("down")).get(
            f"/properties/{PROP}/booked-dates"
        )

        assert response.status_code == 503
        assert response.json()["errorCode"] == "upstream_unavailable"

    def test_corrupt_data_is_500(self):
        client = _client_for(
            InMemoryBookingRepository([
                ReservationRecord(PROP, "2024-03-05", "2024-03-05", "confirmed", "bad")
            ])
        )

        response = client.get(f"/properties/{PROP}/booked-dates")

        assert response.status_code == 500
        assert response.json()["errorCode"] == "data_integrity"
        assert response.json()["blockedDates"] == []


class TestRangeAvailability:
    def test_available(self, client):
        response = client.get(
            f"/properties/{PROP}/availability?check_in=2024-03-08&check_out=2024-03-10"
        )

        assert response.status_code == 200
        assert response.json() == {
            "propertyId": PROP,
            "checkIn": "2024-03-08",
            "checkOut": "2024-03-10",
            "available": True,
            "conflictingReservationId": None,
            "error": None,
        }

    def test_cancelled_does_not_block(self, client):
        response = client.get(
            f"/properties/{PROP}/availability?check_in=2024-03-21&check_out=2024-03-23"
        )

        assert response.json()["available"] is True

    def test_unavailable(self, client):
        response = client.get(
            f"/properties/{PROP}/availability?check_in=2024-03-07&check_out=2024-03-09"
        )

        assert response.status_code == 200
        assert response.json()["available"] is False
        assert response.json()["conflictingReservationId"] == "r2"

    def test_inverted_range(self, client):
        response = client.get(
            f"/properties/{PROP}/availability?check_in=2024-03-09&check_out=2024-03-07"
        )

        assert response.status_code == 422
        assert response.json()["errorCode"] == "invalid_input"
        assert response.json()["available"] is False

    def test_missing_dates(self, client):
        response = client.get(f"/properties/{PROP}/availability")

        assert response.status_code == 422

    def test_timeout(self):
        response = _failing(RepositoryTimeoutError("slow")).get(
            f"/properties/{PROP}/availability?check_in=2024-03-08&check_out=2024-03-10"
        )

        assert response.status_code == 504
