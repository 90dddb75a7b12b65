"""Management endpoints for metrics and recent tool failures."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from api.auth import enforce_api_key
from api.metrics import metrics
from api.models.admin import MetricsResponse, RecentError
from observability.errors import error_recorder


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(enforce_api_key)])


@router.get("/metrics", response_model=MetricsResponse, summary="Gateway metrics snapshot")
async def metrics_snapshot() -> MetricsResponse:
    return MetricsResponse(**metrics.snapshot())


@router.get(
    "/errors",
    response_model=List[RecentError],
    summary="List recent tool failures",
)
async def list_errors() -> List[RecentError]:
    return [RecentError(**entry) for entry in error_recorder.list()]
