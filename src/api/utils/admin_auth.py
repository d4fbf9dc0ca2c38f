"""
Admin API Key Authentication

Guards the administrative rate limit endpoints.
"""

import hmac

from fastapi import Header, status

from config import ApplicationConfig
from src.api.error import ClientError
from src.core.result import Error


async def verify_admin_api_key(x_admin_api_key: str = Header(None)):
    """
    Verify admin API key from X-Admin-API-Key header.

    Raises:
        ClientError: 401 if key is missing or invalid
    """
    if not x_admin_api_key:
        raise ClientError(
            Error("UNAUTHORIZED", "Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    if not hmac.compare_digest(x_admin_api_key, str(ApplicationConfig.ADMIN_API_KEY)):
        raise ClientError(
            Error("INVALID_API_KEY", "Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return True
