"""
Shared dependencies for FastAPI routers.

This module contains:
- Trigger authentication (cron secret or Authorization header)
- CORS header construction for trigger responses
"""

import logging
import secrets
from typing import Dict, Optional

from backend.services.config import EngineSettings
from backend.services.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# =============================================================================
# Authentication
# =============================================================================

CRON_SECRET_HEADER = "x-cron-secret"

CORS_ALLOW_HEADERS = (
    "authorization, x-client-info, apikey, content-type, x-cron-secret"
)


def authenticate_trigger(
    cron_secret: Optional[str],
    authorization: Optional[str],
    settings: EngineSettings,
) -> str:
    """
    Authenticate a trigger request.

    Accepts either the shared cron secret (``x-cron-secret`` header) or an
    ``Authorization`` header.  A cron secret is checked only when
    ``CRON_SECRET`` is configured, and then it must match even if an
    ``Authorization`` header is also present.  Authorization credentials are
    verified upstream by the platform gateway; here only their presence is
    required.

    Uses constant-time comparison to prevent timing attacks.

    Returns:
        The credential kind that was accepted: ``"cron_secret"`` or
        ``"authorization"``.

    Raises:
        AuthenticationError: 401 if no usable credential was sent or the
                             secret is wrong
    """
    has_authorization = bool(authorization and authorization.strip())

    if cron_secret and settings.cron_secret:
        if not _secrets_match(cron_secret, settings.cron_secret):
            logger.warning("Invalid cron secret attempt")
            raise AuthenticationError(message="Invalid cron secret")
        return "cron_secret"

    if cron_secret and not has_authorization:
        logger.warning("Cron secret sent but CRON_SECRET is not configured")

    if not has_authorization:
        raise AuthenticationError(message="Unauthorized")

    return "authorization"


def _secrets_match(provided: str, expected: str) -> bool:
    # compare_digest only accepts ASCII str; headers arrive latin-1 decoded
    return secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    )


# =============================================================================
# CORS
# =============================================================================

def cors_headers(origin: Optional[str], settings: EngineSettings) -> Dict[str, str]:
    """
    CORS headers for a trigger response.

    Echoes the request origin when it is on the allow-list, otherwise
    pins the first allowed origin.
    """
    allowed = settings.allowed_origins
    if origin and origin in allowed:
        allow_origin = origin
    else:
        allow_origin = allowed[0] if allowed else "*"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
    }
