"""Username slugs."""

import re
import secrets
import string
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9.]+")
_DASHES = re.compile(r"-+")


def slugify(value: str) -> str:
    """
    Lowercase, strip accents and collapse everything else into single dashes.

    >>> slugify("  José María ")
    'jose-maria'
    """
    normalized = unicodedata.normalize("NFD", value.strip().lower())
    ascii_only = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
    slug = _NON_SLUG.sub("-", ascii_only)
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def random_string(length: int = 6) -> str:
    """Random lowercase alphanumeric string."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def username_slug(name: str) -> str:
    """Slug a display name with a random suffix so equal names do not collide."""
    return f"{slugify(name)}-{random_string(6)}"
