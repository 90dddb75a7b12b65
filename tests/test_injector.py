"""Tests for outbound credential injection."""

from __future__ import annotations

import httpx
import pytest

from security import ExchangeError, TokenExchanger, caller_credential
from tooling import create_downstream_client
from tests.helpers import FakeIdentityProvider


class RecordingTransport(httpx.AsyncBaseTransport):
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={"ok": True})


@pytest.mark.asyncio
async def test_injector_sets_bearer_header_only(settings, exchanger: TokenExchanger) -> None:
    transport = RecordingTransport()
    client = create_downstream_client(settings, exchanger, transport=transport)

    with caller_credential("caller-jwt"):
        response = await client.post(
            "contoso/app/_apis/thing", json={"a": 1}, headers={"X-Custom": "keep"}
        )

    assert response.status_code == 200
    sent = transport.requests[0]
    assert sent.headers["Authorization"] == "Bearer downstream-token-1"
    assert sent.headers["Accept"] == "application/json"
    assert sent.headers["X-Custom"] == "keep"
    assert sent.method == "POST"
    assert str(sent.url) == "https://dev.azure.com/contoso/app/_apis/thing"
    assert sent.content == b'{"a":1}' or sent.content == b'{"a": 1}'


@pytest.mark.asyncio
async def test_each_outbound_call_exchanges_again(
    settings, exchanger: TokenExchanger, identity_provider: FakeIdentityProvider
) -> None:
    transport = RecordingTransport()
    client = create_downstream_client(settings, exchanger, transport=transport)

    with caller_credential("caller-jwt"):
        await client.get("contoso/_apis/projects")
        await client.get("contoso/_apis/projects")

    assert len(identity_provider.requests) == 2
    assert [r.headers["Authorization"] for r in transport.requests] == [
        "Bearer downstream-token-1",
        "Bearer downstream-token-2",
    ]


@pytest.mark.asyncio
async def test_failed_exchange_never_sends_request(
    settings, exchanger: TokenExchanger, identity_provider: FakeIdentityProvider
) -> None:
    identity_provider.status_code = 401
    identity_provider.error = {"error": "invalid_grant", "error_description": "expired"}
    transport = RecordingTransport()
    client = create_downstream_client(settings, exchanger, transport=transport)

    with caller_credential("stale-jwt"):
        with pytest.raises(ExchangeError):
            await client.get("contoso/_apis/projects")

    assert transport.requests == []


@pytest.mark.asyncio
async def test_unbound_caller_credential_aborts_call(settings, exchanger: TokenExchanger) -> None:
    transport = RecordingTransport()
    client = create_downstream_client(settings, exchanger, transport=transport)

    with pytest.raises(ExchangeError):
        await client.get("contoso/_apis/projects")
    assert transport.requests == []
