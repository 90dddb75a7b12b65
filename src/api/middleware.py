"""Custom middleware components for the DevOps gateway."""

from __future__ import annotations

import json
import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from observability.context import clear_log_context, set_request_id, update_log_context
from security.context import parse_bearer


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log structured request/response information for every call."""

    def __init__(self, app, logger) -> None:  # type: ignore[override]
        super().__init__(app)
        self._logger = logger

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            self._logger.info(
                {
                    "event": "http.request",
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code if response else 500,
                    "duration_ms": round(duration_ms, 3),
                    "client_ip": request.client.host if request.client else None,
                    "user_agent": request.headers.get("user-agent"),
                }
            )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID (from header or generated) and stores it in context vars."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        clear_log_context()
        request_id = request.headers.get("x-request-id") or str(uuid4())
        set_request_id(request_id)
        update_log_context(endpoint=request.url.path)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response


class BearerChallengeMiddleware:
    """Rejects calls to the MCP endpoint that carry no bearer credential.

    The 401 points the client at the protected-resource metadata document so
    it can discover the authorization server and obtain a token. Signature
    and audience checks are left to the identity provider, which validates
    the credential again when it is exchanged.
    """

    def __init__(self, app: ASGIApp, *, path_prefix: str, resource_metadata_url: str) -> None:
        self._app = app
        self._path_prefix = path_prefix
        self._resource_metadata_url = resource_metadata_url

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self._path_prefix):
            await self._app(scope, receive, send)
            return
        headers = dict(scope.get("headers") or [])
        authorization = headers.get(b"authorization", b"").decode("latin-1")
        if parse_bearer(authorization):
            await self._app(scope, receive, send)
            return
        body = json.dumps(
            {"error": "invalid_token", "error_description": "Bearer token required"}
        ).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": 401,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode("ascii")),
                    (
                        b"www-authenticate",
                        f'Bearer resource_metadata="{self._resource_metadata_url}"'.encode(
                            "latin-1"
                        ),
                    ),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
