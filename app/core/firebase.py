"""Firebase Admin SDK initialization and ID token verification."""

import json
import os
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None

# Firebase ``sign_in_provider`` -> (provider name, account type).
# Unknown sign-in providers keep their raw name and are denied downstream.
SIGN_IN_PROVIDERS: dict[str, tuple[str, str]] = {
    "google.com": ("google", "oauth"),
    "facebook.com": ("facebook", "oauth"),
    "emailLink": ("email", "email"),
    "password": ("credentials", "credentials"),
}


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("firebase_already_initialized")
        return

    try:
        cred = None

        if firebase_config_json:
            logger.info("firebase_init_from_json")
            cred = credentials.Certificate(json.loads(firebase_config_json))
        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("firebase_init_from_file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred)
        else:
            _firebase_app = firebase_admin.initialize_app()
            logger.info("firebase_init_default_credentials")

    except Exception as e:
        logger.error("firebase_init_failed", error=str(e))
        raise


async def verify_firebase_token(id_token: str) -> dict[str, Any]:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token from the client

    Returns:
        Decoded token containing user information

    Raises:
        ValueError: If token is invalid or expired
    """
    try:
        # clock_skew_seconds tolerates small client/server clock drift
        decoded_token = auth.verify_id_token(id_token, clock_skew_seconds=10)
    except auth.InvalidIdTokenError as e:
        logger.warning("firebase_token_invalid", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}") from e
    except Exception as e:
        logger.error("firebase_token_verification_failed", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}") from e

    logger.info(
        "firebase_token_verified",
        uid=decoded_token.get("uid"),
        sign_in_provider=decoded_token.get("firebase", {}).get("sign_in_provider"),
    )
    return decoded_token


def sign_in_provider(decoded_token: dict[str, Any]) -> tuple[str, str, str]:
    """
    Work out which provider a decoded Firebase token was issued for.

    Returns:
        Tuple of (provider name, account type, provider account id). The
        account id is the provider's own user id when Firebase exposes it,
        otherwise the Firebase uid.
    """
    firebase_claims = decoded_token.get("firebase") or {}
    raw_provider = firebase_claims.get("sign_in_provider", "")
    provider, account_type = SIGN_IN_PROVIDERS.get(raw_provider, (raw_provider, "oauth"))

    identities = firebase_claims.get("identities") or {}
    provider_ids = identities.get(raw_provider) or []
    provider_account_id = str(provider_ids[0]) if provider_ids else decoded_token["uid"]

    return provider, account_type, provider_account_id


def is_firebase_initialized() -> bool:
    """Whether the Admin SDK app has been created in this process."""
    return _firebase_app is not None
