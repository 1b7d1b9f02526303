"""reCAPTCHA verification for register/login."""

import logging
from typing import Optional

import httpx

from pintag.settings import settings

logger = logging.getLogger(__name__)


class RecaptchaUnavailable(Exception):
    """The verification service could not be reached."""


async def verify_recaptcha(token: Optional[str], remote_ip: Optional[str] = None) -> bool:
    """Verify a reCAPTCHA response token.

    Returns True without a network call when no secret key is configured
    (local development and tests).
    """
    if not settings.recaptcha_secret_key:
        return True
    if not token:
        return False

    data = {"secret": settings.recaptcha_secret_key, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(settings.recaptcha_verify_url, data=data)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as e:
        logger.warning("reCAPTCHA verification request failed: %s", e)
        raise RecaptchaUnavailable(str(e))

    return bool(payload.get("success"))
