"""Models for management and discovery endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str
    service: str


class ProtectedResourceMetadata(BaseModel):
    resource: str
    authorization_servers: List[str]
    scopes_supported: List[str]
    bearer_methods_supported: List[str] = Field(default_factory=lambda: ["header"])


class MetricsResponse(BaseModel):
    tool_invocations: int
    tool_failures: int
    average_tool_latency_ms: float
    tool_breakdown: Dict[str, Dict[str, Any]]
    token_exchanges: int
    token_exchange_failures: int
    token_cache_hits: int


class RecentError(BaseModel):
    model_config = ConfigDict(extra="allow")

    timestamp: int
    event: str
    message: str
    request_id: Optional[str] = None
    tool: Optional[str] = None
    error_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
