"""
Admin authentication for API endpoints.

Admin routes require the ``X-Admin-Key`` header to match the configured
``ADMIN_API_KEY``. With no key configured every admin request is rejected.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from sentinel.config import settings


def require_admin_key(
    x_admin_key: Optional[str] = Header(
        None,
        description="Shared admin secret",
        alias="X-Admin-Key",
    ),
) -> None:
    """
    FastAPI dependency guarding admin endpoints.

    Raises:
        HTTPException(401): If the key is missing, wrong, or not configured
    """
    expected = settings.admin_api_key
    if not expected or not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
