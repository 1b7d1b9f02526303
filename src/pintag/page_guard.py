"""Redirect rules for browser page requests based on the auth cookie."""

from typing import Optional
from urllib.parse import quote

PROTECTED_PREFIXES = ("/tag", "/gallery")
PASSTHROUGH_PREFIXES = ("/api/", "/health", "/static/", "/_next")


def _is_protected(path: str) -> bool:
    if path == "/":
        return True
    return path.startswith(PROTECTED_PREFIXES)


def page_redirect(path: str, has_token: bool) -> Optional[str]:
    """Return the redirect target for a page request, or None to continue.

    Signed-out visitors to protected pages go to the login page with the
    original path in ``from``; signed-in visitors to the login page go home.
    Asset paths (anything with a dot in it) and API routes are never touched.
    """
    if not path or path.startswith(PASSTHROUGH_PREFIXES) or "." in path:
        return None

    if path == "/login" or path.startswith("/login/"):
        return "/" if has_token else None

    if _is_protected(path) and not has_token:
        return f"/login?from={quote(path, safe='/')}"
    return None
