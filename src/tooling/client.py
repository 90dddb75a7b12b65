"""Shared HTTP client for Azure DevOps calls."""

from __future__ import annotations

import httpx

from config import Settings
from security import OutboundCredentialInjector, TokenExchanger


def create_downstream_client(
    settings: Settings,
    exchanger: TokenExchanger,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the process-wide client; every request goes through the injector."""

    return httpx.AsyncClient(
        base_url=settings.downstream_base_url,
        headers={"Accept": "application/json"},
        timeout=settings.downstream_timeout,
        auth=OutboundCredentialInjector(exchanger),
        transport=transport,
    )
