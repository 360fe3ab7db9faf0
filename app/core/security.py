"""Session tokens.

Access and refresh tokens are HS256 JWTs carrying the same identity claims;
the ``type`` claim keeps one from being accepted in place of the other.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import settings

ACCESS = "access"
REFRESH = "refresh"

# Claims copied from the user row into every session token
IDENTITY_CLAIMS = ("id", "username", "name", "email", "role")


def user_claims(user: dict[str, Any]) -> dict[str, Any]:
    """JSON serializable identity claims for a user row."""
    user_id = str(user["id"])
    return {
        "sub": user_id,
        "id": user_id,
        "username": user.get("username"),
        "name": user.get("name"),
        "email": user["email"],
        "role": user["role"],
    }


def _encode(claims: dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    issued_at = datetime.now(UTC)
    payload = {
        **claims,
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode(token: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return payload if payload.get("type") == token_type else None


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Sign a short lived access token.

    Args:
        data: Claims to embed
        expires_delta: Lifetime, ``ACCESS_TOKEN_EXPIRE_MINUTES`` by default
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(data, ACCESS, lifetime)


def create_refresh_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Sign a refresh token.

    Args:
        data: Claims to embed
        expires_delta: Lifetime, ``REFRESH_TOKEN_EXPIRE_DAYS`` by default
    """
    lifetime = expires_delta or timedelta(days=settings.refresh_token_expire_days)
    return _encode(data, REFRESH, lifetime)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired access token; None otherwise."""
    return _decode(token, ACCESS)


def decode_refresh_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired refresh token; None otherwise."""
    return _decode(token, REFRESH)
