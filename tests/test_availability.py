"""Tests for the DNI and username availability endpoints."""

import pytest
from httpx import AsyncClient

from app.services.availability_service import AvailabilityService


@pytest.mark.asyncio
async def test_dni_becomes_unavailable_once_saved(
    client: AsyncClient, auth_headers: dict, db_session
):
    response = await client.post("/api/dni", json={"DNI": "76097512"})
    assert response.status_code == 200
    assert response.json() == {"available": True}

    response = await client.patch(
        "/api/v1/users/me",
        json={"country": "pe", "DNI": "76097512"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    response = await client.post("/api/dni", json={"DNI": "76097512"})
    assert response.json() == {"available": False}


@pytest.mark.asyncio
async def test_dni_taken_by_doctor_profile(
    client: AsyncClient, admin_headers: dict, db_session
):
    response = await client.patch(
        "/api/v1/users/me",
        json={"country": "pe", "DNI": "40404040"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["doctor_profile"]["DNI"] == "40404040"

    response = await client.post("/api/dni", json={"DNI": "40404040"})
    assert response.json() == {"available": False}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("dni", "code"),
    [
        ("", "not_empty"),
        ("7609751a", "not_number"),
        ("7609 751", "not_number"),
        ("7609751", "required_length_8"),
        ("760975123", "required_length_8"),
    ],
)
async def test_malformed_dni_reports_its_error_code(client: AsyncClient, dni: str, code: str):
    response = await client.post("/api/dni", json={"DNI": dni})

    assert response.status_code == 422
    assert response.json()["fields"] == {"DNI": code}


@pytest.mark.asyncio
async def test_numeric_dni_reports_not_number(client: AsyncClient):
    response = await client.post("/api/dni", json={"DNI": 76097512})

    assert response.status_code == 422
    assert response.json()["fields"] == {"DNI": "not_number"}


@pytest.mark.asyncio
async def test_dni_checks_are_rate_limited(client: AsyncClient, mock_redis):
    mock_redis.incr.return_value = 1000

    response = await client.post("/api/dni", json={"DNI": "76097512"})

    assert response.status_code == 429
    assert response.json()["code"] == "rate_limited"


@pytest.mark.asyncio
async def test_username_availability(client: AsyncClient, test_user: dict):
    response = await client.post("/api/username", json={"username": "Patient"})
    assert response.status_code == 200
    assert response.json() == {
        "available": False,
        "premium": False,
        "message": "A user exists with that username",
    }

    response = await client.post("/api/username", json={"username": "Dr. House"})
    assert response.json()["available"] is True


@pytest.mark.asyncio
async def test_premium_username_is_flagged(db_session):
    service = AvailabilityService(premium_usernames={"doctor"})

    result = await service.check_username(db_session, "Doctor")

    assert result.available is True
    assert result.premium is True


@pytest.mark.asyncio
async def test_is_dni_taken_can_exclude_owner(db_session, client: AsyncClient, auth_headers, test_user):
    await client.patch(
        "/api/v1/users/me", json={"country": "pe", "DNI": "01234567"}, headers=auth_headers
    )
    service = AvailabilityService()

    assert await service.is_dni_taken(db_session, "01234567") is True
    assert await service.is_dni_taken(db_session, "01234567", exclude_user_id=test_user["id"]) is False
    assert await service.is_dni_taken(db_session, "1234567") is False
