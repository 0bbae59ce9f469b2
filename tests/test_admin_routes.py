"""Tests for the admin reservation listing and its bearer-token guard."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import OIDC_ENV, create_token
from staybook.api.factory import create_app
from staybook.api.routes.availability import get_availability_service
from staybook.domain.availability import ReservationRecord, ReservationStatus
from staybook.domain.users import Role, User
from staybook.infra.repositories.bookings_repository import InMemoryBookingRepository
from staybook.services.availability_service import AvailabilityQueryService

PROP = "5b1f0c2e-8d4a-4c3b-9e2f-0a1b2c3d4e5f"


def _user_lookup(role: Role):
    def lookup(external_subject: str):
        if external_subject == "user-123":
            return User(id="u-1", external_subject="user-123", email="a@example.com", role=role)
        return None

    return lookup


@pytest.fixture
def admin_client(jwks):
    app = create_app(role="admin")
    repo = InMemoryBookingRepository([
        ReservationRecord(PROP, date(2024, 3, 1), date(2024, 3, 4), ReservationStatus.CONFIRMED, "r1"),
        ReservationRecord(PROP, "2024-03-02", "2024-03-03", "cancelled", "r2"),
    ])
    app.dependency_overrides[get_availability_service] = lambda: AvailabilityQueryService(repo)

    with patch("staybook.api.auth._fetch_jwks", return_value=jwks), \
         patch.dict("os.environ", OIDC_ENV):
        yield TestClient(app)


def _auth(rsa_keypair, **kwargs) -> dict:
    private_key, _ = rsa_keypair
    return {"Authorization": f"Bearer {create_token(private_key, **kwargs)}"}


URL = f"/admin/properties/{PROP}/reservations"


class TestAdminMounting:
    def test_not_mounted_for_public_role(self):
        client = TestClient(create_app(role="public"))

        assert client.get(URL).status_code == 404


class TestAdminReservations:
    def test_admin_sees_all_rows(self, admin_client, rsa_keypair):
        with patch("staybook.api.auth._get_user_from_db", side_effect=_user_lookup(Role.ADMIN)):
            response = admin_client.get(URL, headers=_auth(rsa_keypair))

        assert response.status_code == 200
        assert response.json() == {
            "propertyId": PROP,
            "reservations": [
                {"id": "r1", "checkIn": "2024-03-01", "checkOut": "2024-03-04", "status": "confirmed"},
                {"id": "r2", "checkIn": "2024-03-02", "checkOut": "2024-03-03", "status": "cancelled"},
            ],
        }

    def test_staff_can_view(self, admin_client, rsa_keypair):
        with patch("staybook.api.auth._get_user_from_db", side_effect=_user_lookup(Role.STAFF)):
            response = admin_client.get(URL, headers=_auth(rsa_keypair))

        assert response.status_code == 200

    def test_guest_is_forbidden(self, admin_client, rsa_keypair):
        with patch("staybook.api.auth._get_user_from_db", side_effect=_user_lookup(Role.GUEST)):
            response = admin_client.get(URL, headers=_auth(rsa_keypair))

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient role"

    def test_unknown_user_is_forbidden(self, admin_client, rsa_keypair):
        with patch("staybook.api.auth._get_user_from_db", side_effect=_user_lookup(Role.ADMIN)):
            response = admin_client.get(URL, headers=_auth(rsa_keypair, sub="stranger"))

        assert response.status_code == 403
        assert response.json()["detail"] == "User not found"

    def test_missing_header(self, admin_client):
        response = admin_client.get(URL)

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"

    def test_wrong_scheme(self, admin_client):
        response = admin_client.get(URL, headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    def test_expired_token(self, admin_client, rsa_keypair):
        response = admin_client.get(URL, headers=_auth(rsa_keypair, exp=1))

        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_wrong_audience(self, admin_client, rsa_keypair):
        response = admin_client.get(URL, headers=_auth(rsa_keypair, aud="someone-else"))

        assert response.status_code == 401

    def test_unknown_kid(self, admin_client, rsa_keypair):
        response = admin_client.get(URL, headers=_auth(rsa_keypair, kid="rotated-away"))

        assert response.status_code == 401

    def test_invalid_property_id(self, admin_client, rsa_keypair):
        with patch("staybook.api.auth._get_user_from_db", side_effect=_user_lookup(Role.ADMIN)):
            response = admin_client.get(
                "/admin/properties/bogus/reservations", headers=_auth(rsa_keypair)
            )

        assert response.status_code == 422
        assert response.json()["errorCode"] == "invalid_input"


class TestOidcNotConfigured:
    def test_rejects_when_env_missing(self, rsa_keypair):
        with patch.dict("os.environ", {}, clear=True):
            client = TestClient(create_app(role="admin"))
            response = client.get(URL, headers=_auth(rsa_keypair))

        assert response.status_code == 401
        assert response.json()["detail"] == "OIDC not configured"
