"""License validity check."""

import hashlib

import httpx
from structlog import get_logger

from app.config import settings
from app.core.redis_client import CacheManager

logger = get_logger(__name__)


def _cache_key(license_key: str) -> str:
    # Never put the raw key into Redis
    return f"license:{hashlib.sha256(license_key.encode()).hexdigest()}"


async def check_license(license_key: str, cache: CacheManager | None = None) -> bool:
    """
    Check a license key against the license server.

    Args:
        license_key: License key from the environment
        cache: Optional cache for the server's answer

    Returns:
        True if the license server reports the key as valid
    """
    if not license_key:
        return False

    if cache:
        cached = cache.get_json(_cache_key(license_key))
        if cached is not None:
            return bool(cached.get("valid"))

    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(settings.license_api_url, params={"key": license_key})
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("license_check_failed", error=str(e))
        return False

    valid = bool(data.get("valid"))
    if cache:
        cache.set_json(_cache_key(license_key), {"valid": valid}, ttl=settings.license_cache_ttl)

    logger.info("license_checked", valid=valid)
    return valid
