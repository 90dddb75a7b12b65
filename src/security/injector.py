"""httpx auth stage that attaches a freshly exchanged token to outbound calls."""

from __future__ import annotations

from typing import AsyncGenerator, Generator

import httpx

from security.context import get_caller_credential
from security.exchange import TokenExchanger


class OutboundCredentialInjector(httpx.Auth):
    """Exchanges the caller credential and sets the bearer header.

    Only the ``Authorization`` header is touched. When the exchange fails the
    error propagates out of the client call and nothing is sent.
    """

    def __init__(self, exchanger: TokenExchanger) -> None:
        self._exchanger = exchanger

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._exchanger.exchange(get_caller_credential())
        request.headers["Authorization"] = f"Bearer {token.access_token}"
        yield request

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError("OutboundCredentialInjector requires an httpx.AsyncClient")
        yield request  # pragma: no cover
