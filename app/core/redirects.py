"""Post-authentication redirect safety."""

from urllib.parse import urlencode, urlparse

from app.config import settings


def _origin(url: str) -> tuple[str, str]:
    parsed = urlparse(url)
    return parsed.scheme.lower(), parsed.netloc.lower()


def safe_redirect_url(url: str | None, base_url: str | None = None) -> str:
    """
    Resolve a post-auth redirect target.

    Relative paths are joined onto the base URL, absolute URLs are only kept
    when they share the web app's origin. Anything else (other hosts,
    ``javascript:`` URLs, protocol relative ``//host`` paths) falls back to the
    base URL.

    Args:
        url: Requested redirect target
        base_url: Application base URL, defaults to ``WEBAPP_URL``

    Returns:
        A URL on the application's origin
    """
    base = (base_url or settings.webapp_url).rstrip("/")
    if not url:
        return base

    if url.startswith("/") and not url.startswith("//"):
        return f"{base}{url}"

    scheme, netloc = _origin(url)
    if scheme in ("http", "https") and (scheme, netloc) == _origin(base):
        return url

    return base


def auth_error_path(code: str) -> str:
    """Path of the sign-in error screen for an error code."""
    return f"{settings.auth_error_path}?{urlencode({'error': code})}"
