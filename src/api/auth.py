"""API key authentication dependency for admin endpoints."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader


api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


async def enforce_api_key(
    request: Request, api_key: str | None = Depends(api_key_header)
) -> None:
    """Validate the admin API key; no key configured means open mode."""

    expected = request.app.state.settings.api_key
    if not expected:
        return
    if not api_key or not hmac.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key"
        )
