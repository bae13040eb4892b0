"""Authentication and rate limiting helpers for the API."""

import secrets
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request
from slowapi import Limiter

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Best guess of the caller's address, honouring X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def create_limiter() -> Limiter:
    """Rate limiter keyed by caller address, one per application."""
    return Limiter(key_func=client_ip)


async def verify_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None),
) -> str:
    """Verify the shared secret sent in the ``x-api-key`` header.

    Args:
        request: Incoming request; the expected key comes from app settings.
        x_api_key: Value of the ``x-api-key`` header.

    Returns:
        The verified API key.

    Raises:
        HTTPException: 401 if the key is missing, 403 if it is wrong, 500 if
            no key is configured.
    """
    expected_key = request.app.state.settings.app_key
    if not expected_key:
        logger.error("APP_KEY is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key is required")
    if not secrets.compare_digest(x_api_key.encode(), expected_key.encode()):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_api_key
