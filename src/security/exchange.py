"""On-Behalf-Of token exchange against the Microsoft identity platform."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from api.metrics import metrics
from config import Settings
from observability.errors import GatewayError
from security.cache import TokenCache
from security.context import fingerprint
from security.models import ConfidentialClient, DownstreamToken


logger = logging.getLogger("devops_gateway.security.exchange")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class ExchangeError(GatewayError):
    """Raised when a caller credential cannot be exchanged.

    Not retried: a stale or unconsented credential fails identically on a
    second attempt, so the caller has to re-authenticate instead.
    """

    kind = "exchange_error"

    def __init__(self, message: str, *, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class TokenExchanger:
    """Converts an inbound caller credential into a downstream-scoped token."""

    def __init__(
        self,
        identity: ConfidentialClient,
        scope: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[TokenCache] = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._identity = identity
        self._scope = scope
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._cache = cache
        self._clock = clock

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: Optional[httpx.AsyncClient] = None
    ) -> "TokenExchanger":
        identity = ConfidentialClient.from_identity(settings.require_identity())
        cache = (
            TokenCache(refresh_margin=settings.token_refresh_margin)
            if settings.token_cache_enabled
            else None
        )
        return cls(identity, settings.downstream_scope, client=client, cache=cache)

    async def exchange(self, caller_credential: Optional[str]) -> DownstreamToken:
        if not caller_credential or not caller_credential.strip():
            metrics.record_exchange(success=False, cached=False)
            raise ExchangeError("Access token is not available.")

        if self._cache is not None:
            cached = await self._cache.get(caller_credential, self._scope)
            if cached is not None:
                metrics.record_exchange(success=True, cached=True)
                return cached

        try:
            token = await self._request_token(caller_credential)
        except ExchangeError as exc:
            metrics.record_exchange(success=False, cached=False)
            logger.warning(
                {
                    "event": "token.exchange.failed",
                    "caller": fingerprint(caller_credential)[:12],
                    "error_code": exc.error_code,
                    "message": str(exc),
                }
            )
            raise

        metrics.record_exchange(success=True, cached=False)
        logger.debug(
            {
                "event": "token.exchange.succeeded",
                "caller": fingerprint(caller_credential)[:12],
                "scope": token.scope,
                "expires_at": int(token.expires_at),
            }
        )
        if self._cache is not None:
            await self._cache.put(caller_credential, token)
        return token

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def _request_token(self, assertion: str) -> DownstreamToken:
        form = {
            "grant_type": JWT_BEARER_GRANT,
            "client_id": self._identity.client_id,
            "client_secret": self._identity.client_secret,
            "assertion": assertion,
            "scope": self._scope,
            "requested_token_use": "on_behalf_of",
        }
        issued_at = self._clock()
        try:
            response = await self._client.post(
                self._identity.token_endpoint,
                data=form,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise ExchangeError(f"Token endpoint unreachable: {exc}") from exc

        payload = self._parse_payload(response)
        if response.status_code >= 400:
            error_code = payload.get("error")
            description = payload.get("error_description") or response.text
            raise ExchangeError(
                f"On-Behalf-Of exchange rejected ({error_code or response.status_code}): "
                f"{description}",
                error_code=error_code,
            )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ExchangeError("Token endpoint response did not contain an access token")
        try:
            expires_in = float(payload.get("expires_in", 0))
        except (TypeError, ValueError) as exc:
            raise ExchangeError("Token endpoint returned an invalid expires_in") from exc
        return DownstreamToken(
            access_token=access_token,
            scope=self._scope,
            expires_at=issued_at + expires_in,
            token_type=payload.get("token_type") or "Bearer",
        )

    @staticmethod
    def _parse_payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                return {}
            raise ExchangeError("Token endpoint returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise ExchangeError("Token endpoint returned an unexpected body")
        return payload
