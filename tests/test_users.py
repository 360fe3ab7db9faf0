"""Tests for profile endpoints."""

import json

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_current_user(client: AsyncClient, auth_headers: dict, test_user: dict):
    response = await client.get("/api/v1/users/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(test_user["id"])
    assert data["time_zone"] == "America/Lima"
    assert data["completed_onboarding"] is False
    assert data["patient_profile"] is None


@pytest.mark.asyncio
async def test_current_user_is_cached(
    client: AsyncClient, auth_headers: dict, test_user: dict, mock_redis
):
    first = await client.get("/api/v1/users/me", headers=auth_headers)

    key, ttl, payload = mock_redis.setex.call_args.args
    assert key == f"user:{test_user['id']}"
    assert ttl == 1800
    assert json.loads(payload)["email"] == test_user["email"]

    mock_redis.get.return_value = payload
    second = await client.get("/api/v1/users/me", headers=auth_headers)
    assert second.json() == first.json()


@pytest.mark.asyncio
async def test_update_invalidates_cache(
    client: AsyncClient, auth_headers: dict, test_user: dict, mock_redis
):
    response = await client.patch("/api/v1/users/me", json={"bio": "Hola"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["bio"] == "Hola"
    mock_redis.delete.assert_any_call(f"user:{test_user['id']}")


@pytest.mark.asyncio
async def test_peruvian_user_needs_dni(client: AsyncClient, auth_headers: dict):
    response = await client.patch("/api/v1/users/me", json={"country": "PE"}, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["fields"] == {"DNI": "not_empty"}


@pytest.mark.asyncio
async def test_non_string_country_is_a_field_error(client: AsyncClient, auth_headers: dict):
    response = await client.patch("/api/v1/users/me", json={"country": 51}, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["fields"] == {"country": "string_type"}


@pytest.mark.asyncio
async def test_non_peruvian_user_does_not_store_dni(client: AsyncClient, auth_headers: dict):
    response = await client.patch(
        "/api/v1/users/me",
        json={"country": "us", "DNI": "not-a-dni"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["country"] == "us"
    assert data["patient_profile"] is None


@pytest.mark.asyncio
async def test_dni_keeps_leading_zeros(client: AsyncClient, auth_headers: dict):
    response = await client.patch(
        "/api/v1/users/me",
        json={"country": "pe", "DNI": "00012345"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["patient_profile"]["DNI"] == "00012345"


@pytest.mark.asyncio
async def test_dni_can_be_changed_and_saved_again(client: AsyncClient, auth_headers: dict):
    for dni in ("11111111", "22222222", "22222222"):
        response = await client.patch(
            "/api/v1/users/me", json={"country": "pe", "DNI": dni}, headers=auth_headers
        )
        assert response.status_code == 200

    assert response.json()["patient_profile"]["DNI"] == "22222222"
    available = await client.post("/api/dni", json={"DNI": "11111111"})
    assert available.json() == {"available": True}


@pytest.mark.asyncio
async def test_dni_taken_by_another_user_conflicts(
    client: AsyncClient, auth_headers: dict, admin_headers: dict
):
    await client.patch(
        "/api/v1/users/me", json={"country": "pe", "DNI": "76097512"}, headers=admin_headers
    )

    response = await client.patch(
        "/api/v1/users/me", json={"country": "pe", "DNI": "76097512"}, headers=auth_headers
    )

    assert response.status_code == 409
    assert response.json()["code"] == "dni_taken"


@pytest.mark.asyncio
async def test_username_is_slugified(client: AsyncClient, auth_headers: dict):
    response = await client.patch(
        "/api/v1/users/me", json={"username": "José María"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["username"] == "jose-maria"


@pytest.mark.asyncio
async def test_username_taken_conflicts(
    client: AsyncClient, auth_headers: dict, admin_user: dict
):
    response = await client.patch(
        "/api/v1/users/me", json={"username": admin_user["username"] + "  "}, headers=auth_headers
    )

    assert response.status_code == 409
    assert response.json()["code"] == "username_taken"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "field", "code"),
    [
        ({"username": "abc"}, "username", "min_length_4"),
        ({"name": "Ana"}, "name", "min_length_5"),
        ({"first_name": "A"}, "first_name", "min_length_2"),
        ({"phone_number": ""}, "phone_number", "not_empty"),
        ({"phone_number": "98765432x"}, "phone_number", "not_number"),
        ({"phone_number": "98765432"}, "phone_number", "required_length_9"),
    ],
)
async def test_profile_field_rules(
    client: AsyncClient, auth_headers: dict, payload: dict, field: str, code: str
):
    response = await client.patch("/api/v1/users/me", json=payload, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["fields"][field] == code


@pytest.mark.asyncio
async def test_name_is_composed_from_parts(client: AsyncClient, auth_headers: dict):
    response = await client.patch(
        "/api/v1/users/me",
        json={"first_name": "Ana", "last_name": "Torres", "phone_number": "987654321"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Ana Torres"
    assert data["phone_number"] == "987654321"


@pytest.mark.asyncio
async def test_complete_onboarding(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/v1/users/me/onboard", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["completed_onboarding"] is True


@pytest.mark.asyncio
async def test_delete_account_cascades(client: AsyncClient, auth_headers: dict):
    await client.patch(
        "/api/v1/users/me", json={"country": "pe", "DNI": "76097512"}, headers=auth_headers
    )

    response = await client.delete("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 401
    assert response.json()["code"] == "session_user_not_found"

    available = await client.post("/api/dni", json={"DNI": "76097512"})
    assert available.json() == {"available": True}


@pytest.mark.asyncio
async def test_admin_can_invite(client: AsyncClient, admin_headers: dict):
    response = await client.post(
        "/api/v1/users/invite",
        json={"email": "invited@example.com", "role": "USER"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["username"] is None
    assert data["email_verified"] is None

    response = await client.post(
        "/api/v1/users/invite", json={"email": "invited@example.com"}, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["code"] == "email_taken"


@pytest.mark.asyncio
async def test_patient_cannot_invite(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/v1/users/invite", json={"email": "invited@example.com"}, headers=auth_headers
    )

    assert response.status_code == 403
