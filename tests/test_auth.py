"""Tests for sign in, session and token endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from app.core.security import create_refresh_token, decode_access_token, user_claims
from app.models import users
from app.services.auth_service import AuthService, error_message


def firebase_token(
    provider: str = "google.com",
    uid: str = "firebase-uid-1",
    provider_id: str = "g-100",
    email: str = "maria@example.com",
    email_verified: bool = True,
    name: str | None = "María López",
) -> dict:
    return {
        "uid": uid,
        "email": email,
        "email_verified": email_verified,
        "name": name,
        "exp": 4102444800,
        "firebase": {
            "sign_in_provider": provider,
            "identities": {provider: [provider_id]} if provider_id else {},
        },
    }


def verify_returns(decoded: dict):
    return patch(
        "app.services.auth_service.verify_firebase_token",
        AsyncMock(return_value=decoded),
    )


@pytest.mark.asyncio
async def test_firebase_sign_in_creates_user_and_issues_tokens(client: AsyncClient):
    with verify_returns(firebase_token()):
        response = await client.post(
            "/api/v1/auth/firebase/verify",
            json={"id_token": "token", "callback_url": "/bookings/upcoming"},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["redirect_url"] == "http://localhost:3000/bookings/upcoming"
    assert data["user"]["email"] == "maria@example.com"
    assert data["user"]["username"].startswith("maria-lopez-")
    assert data["user"]["role"] == "USER"

    claims = decode_access_token(data["access_token"])
    assert claims["email"] == "maria@example.com"
    assert claims["id"] == data["user"]["id"]


@pytest.mark.asyncio
async def test_foreign_callback_url_falls_back_to_webapp(client: AsyncClient):
    with verify_returns(firebase_token()):
        response = await client.post(
            "/api/v1/auth/firebase/verify",
            json={"id_token": "token", "callback_url": "https://evil.example.net/steal"},
        )

    assert response.status_code == 200
    assert response.json()["redirect_url"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_unverified_google_email_redirects_to_error_screen(client: AsyncClient):
    with verify_returns(firebase_token(email_verified=False)):
        response = await client.post("/api/v1/auth/firebase/verify", json={"id_token": "token"})

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/error?error=unverified-email"
    assert response.json() == {
        "error": "unverified-email",
        "redirect": "/auth/error?error=unverified-email",
    }


@pytest.mark.asyncio
async def test_unknown_provider_is_denied(client: AsyncClient):
    with verify_returns(firebase_token(provider="github.com", provider_id="gh-1")):
        response = await client.post("/api/v1/auth/firebase/verify", json={"id_token": "token"})

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/error?error=AccessDenied"


@pytest.mark.asyncio
async def test_magic_link_sign_in_creates_magic_user(client: AsyncClient):
    decoded = firebase_token(provider="emailLink", provider_id="", name=None, email="new@example.com")
    with verify_returns(decoded):
        response = await client.post("/api/v1/auth/firebase/verify", json={"id_token": "token"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "new@example.com"


@pytest.mark.asyncio
async def test_magic_link_sign_in_uses_existing_user(client: AsyncClient, test_user: dict):
    decoded = firebase_token(provider="emailLink", provider_id="", email=test_user["email"])
    with verify_returns(decoded):
        response = await client.post("/api/v1/auth/firebase/verify", json={"id_token": "token"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(test_user["id"])


@pytest.mark.asyncio
async def test_invalid_firebase_token_is_unauthorized(client: AsyncClient):
    with patch(
        "app.services.auth_service.verify_firebase_token",
        AsyncMock(side_effect=ValueError("Invalid Firebase ID token: expired")),
    ):
        response = await client.post("/api/v1/auth/firebase/verify", json={"id_token": "bad"})

    assert response.status_code == 401
    assert response.json()["code"] == "invalid_id_token"


@pytest.mark.asyncio
async def test_refresh_reloads_identity_claims(client: AsyncClient, db_session, test_user: dict):
    refresh_token = create_refresh_token(user_claims(test_user))
    await db_session.execute(
        update(users).where(users.c.id == test_user["id"]).values(username="renamed", role="ADMIN")
    )
    await db_session.commit()

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})

    assert response.status_code == 200
    claims = decode_access_token(response.json()["access_token"])
    assert claims["username"] == "renamed"
    assert claims["role"] == "ADMIN"


@pytest.mark.asyncio
async def test_refresh_follows_email_change(client: AsyncClient, db_session, test_user: dict):
    refresh_token = create_refresh_token(user_claims(test_user))
    await db_session.execute(
        update(users)
        .where(users.c.id == test_user["id"])
        .values(email="renamed@example.com", username="renamed")
    )
    await db_session.commit()

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})

    assert response.status_code == 200
    claims = decode_access_token(response.json()["access_token"])
    assert claims["email"] == "renamed@example.com"
    assert claims["username"] == "renamed"
    assert claims["sub"] == str(test_user["id"])


@pytest.mark.asyncio
async def test_refresh_keeps_claims_when_user_is_gone(client: AsyncClient):
    claims = {
        "sub": "0b7d4c1e-5f1a-4b39-9d7e-6f0e1c2a3b4c",
        "id": "0b7d4c1e-5f1a-4b39-9d7e-6f0e1c2a3b4c",
        "username": "ghost",
        "name": "Ghost User",
        "email": "ghost@example.com",
        "role": "USER",
    }
    response = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(claims)}
    )

    assert response.status_code == 200
    refreshed = decode_access_token(response.json()["access_token"])
    assert {key: refreshed[key] for key in claims} == claims


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, auth_headers: dict):
    access_token = auth_headers["Authorization"].split(" ", 1)[1]

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": access_token})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_revoked_refresh_token_is_rejected(client: AsyncClient, mock_redis, test_user: dict):
    mock_redis.exists.return_value = 1

    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": create_refresh_token(user_claims(test_user))},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Token has been revoked"


@pytest.mark.asyncio
async def test_logout_blacklists_refresh_token(client: AsyncClient, mock_redis, test_user: dict):
    refresh_token = create_refresh_token(user_claims(test_user))

    response = await client.post("/api/v1/auth/logout", json={"refresh_token": refresh_token})

    assert response.status_code == 204
    key = mock_redis.setex.call_args.args[0]
    assert key == f"blacklist:{refresh_token}"


@pytest.mark.asyncio
async def test_session_shape(client: AsyncClient, auth_headers: dict, test_user: dict):
    response = await client.get("/api/v1/auth/session", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["hasValidLicense"] is False
    assert data["expires"]
    assert data["user"] == {
        "id": str(test_user["id"]),
        "email": test_user["email"],
        "name": test_user["name"],
        "username": test_user["username"],
        "role": "USER",
        "impersonatedByUID": None,
    }


@pytest.mark.asyncio
async def test_impersonation_claim_reaches_session(test_user: dict, admin_user: dict):
    tokens = AuthService().create_tokens(test_user, impersonated_by=admin_user["id"])
    claims = decode_access_token(tokens.access_token)

    session = AuthService.build_session(claims, has_valid_license=True)

    assert session.user.impersonated_by_uid == admin_user["id"]
    assert session.model_dump(by_alias=True)["hasValidLicense"] is True


@pytest.mark.asyncio
async def test_error_screen_messages(client: AsyncClient):
    response = await client.get("/api/v1/auth/error", params={"error": "OAuthAccountNotLinked"})
    assert response.status_code == 200
    assert response.json()["message"] == error_message("IncorrectProvider")

    response = await client.get("/api/v1/auth/error", params={"error": "no-such-code"})
    assert response.json()["message"].startswith("Something went wrong")


@pytest.mark.asyncio
async def test_providers_always_offer_email(client: AsyncClient):
    response = await client.get("/api/v1/auth/providers")

    assert response.status_code == 200
    assert {"id": "email", "name": "Email", "type": "email"} in response.json()
