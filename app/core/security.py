"""Shared-secret API key gateway for the APCMS routes."""

import hmac

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "x-api-key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def api_key_matches(provided: str, expected: str) -> bool:
    """Compare a presented key against the configured secret in constant time.

    An unset secret never matches, so a misconfigured server rejects
    everything instead of accepting everything.
    """
    if not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
    api_key: str | None = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured ``x-api-key``.

    Raises:
        AuthenticationError: If the header is missing or does not match.
    """
    if not api_key:
        logger.warning("auth.api_key_missing")
        raise AuthenticationError(
            "Access Denied: API Key missing. Please provide an X-API-Key header."
        )

    if not api_key_matches(api_key, settings.external_api_key):
        logger.warning("auth.api_key_invalid")
        raise AuthenticationError("Access Denied: Invalid API Key.")
