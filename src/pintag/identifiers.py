"""Public identifiers: media ids and album slugs."""

import re
import secrets
import string

MEDIA_ID_LENGTH = 10
_MEDIA_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def generate_media_id(length: int = MEDIA_ID_LENGTH) -> str:
    """Return a random URL-safe media id."""
    return "".join(secrets.choice(_MEDIA_ID_ALPHABET) for _ in range(length))


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', trim the edges."""
    slug = _SLUG_STRIP_RE.sub("-", (value or "").lower())
    return slug.strip("-")
