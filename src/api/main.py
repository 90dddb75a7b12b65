"""FastAPI application hosting the MCP endpoint, probes and admin routes."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from api.mcp_server import build_mcp_server
from api.metrics import generate_prometheus_metrics
from api.middleware import (
    BearerChallengeMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
)
from api.models.admin import HealthResponse, ProtectedResourceMetadata
from api.routes import admin
from config import Settings, get_settings
from observability.logging import configure_logging
from security import TokenExchanger
from tooling import DevOpsTools, create_downstream_client


SERVICE_NAME = "devops-gateway"


def create_app(
    settings: Optional[Settings] = None,
    *,
    exchanger: Optional[TokenExchanger] = None,
    downstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the gateway; raises ``ConfigurationError`` on incomplete identity."""

    settings = settings or get_settings()
    identity = settings.require_identity()
    logger = configure_logging(settings.log_level)

    exchanger = exchanger or TokenExchanger.from_settings(settings)
    downstream = create_downstream_client(
        settings, exchanger, transport=downstream_transport
    )
    tools = DevOpsTools(downstream)
    mcp_server = build_mcp_server(tools, settings)
    mcp_app = mcp_server.streamable_http_app()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            {
                "event": "gateway.start",
                "server_url": settings.server_url,
                "resource_metadata_url": settings.resource_metadata_url,
            }
        )
        async with mcp_server.session_manager.run():
            try:
                yield
            finally:
                await downstream.aclose()
                await exchanger.aclose()

    app = FastAPI(title=settings.project_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.tools = tools

    app.add_middleware(
        BearerChallengeMiddleware,
        path_prefix="/mcp",
        resource_metadata_url=settings.resource_metadata_url,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["WWW-Authenticate", "Mcp-Session-Id"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(RequestLoggingMiddleware, logger=logger)

    app.include_router(admin.router)

    if settings.prometheus_enabled:

        @app.get("/metrics/prometheus", include_in_schema=False)
        async def prometheus_metrics() -> Response:
            payload, content_type = generate_prometheus_metrics()
            return Response(content=payload, media_type=content_type)

    @app.get(
        "/.well-known/oauth-protected-resource",
        response_model=ProtectedResourceMetadata,
        summary="OAuth protected resource metadata",
    )
    async def protected_resource_metadata() -> ProtectedResourceMetadata:
        return ProtectedResourceMetadata(
            resource=settings.resource_url,
            authorization_servers=[identity.authority],
            scopes_supported=settings.supported_scopes,
        )

    @app.get("/", response_model=HealthResponse, summary="Root welcome message")
    async def root() -> HealthResponse:
        return HealthResponse(status="ok", service=SERVICE_NAME)

    @app.get("/health", response_model=HealthResponse, summary="Health check endpoint")
    async def health() -> HealthResponse:
        """Expose a dedicated health probe for orchestrators and monitoring."""
        return HealthResponse(status="ok", service=SERVICE_NAME)

    # Catch-all mount; registered last so the routes above win.
    app.mount("/", mcp_app)
    return app


def run() -> None:
    settings = get_settings()
    host = "0.0.0.0" if settings.resource_fqdn else "localhost"
    configure_logging(settings.log_level).info(
        "Starting MCP server with authorization at %s", settings.server_url
    )
    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
