"""Channel used to ask the caller for a missing value mid-call."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from mcp.shared.exceptions import McpError

from tooling.errors import (
    ElicitationCancelled,
    ElicitationFailed,
    InvalidElicitationResponse,
)
from tooling.models import ElicitationRequest, ElicitationResult


logger = logging.getLogger("devops_gateway.tooling.elicitation")


class ElicitationChannel(Protocol):
    async def elicit(self, request: ElicitationRequest) -> ElicitationResult:
        """Send ``request`` to the caller and wait for the structured answer."""


class McpElicitationChannel:
    """Sends ``elicitation/create`` over the MCP session of the current call."""

    def __init__(self, session: Any, related_request_id: Optional[Any] = None) -> None:
        self._session = session
        self._related_request_id = related_request_id

    async def elicit(self, request: ElicitationRequest) -> ElicitationResult:
        try:
            result = await self._session.elicit(
                message=request.message,
                requestedSchema=request.requested_schema,
                related_request_id=self._related_request_id,
            )
        except McpError as exc:
            logger.warning(
                {"event": "elicitation.failed", "code": exc.error.code, "message": exc.error.message}
            )
            raise ElicitationFailed(f"Could not ask the caller: {exc.error.message}") from exc
        return ElicitationResult(action=result.action, content=result.content)


async def elicit_choice(
    channel: ElicitationChannel,
    *,
    message: str,
    field: str,
    options: List[str],
) -> str:
    """Ask the caller to pick one of ``options`` and return the validated pick.

    Answers outside ``options`` are rejected. The prompt is issued once; a
    failed answer is terminal for the invocation.
    """

    request = ElicitationRequest.choice(message, field, options)
    result = await channel.elicit(request)
    if result.action != "accept":
        logger.info({"event": "elicitation.closed", "field": field, "action": result.action})
        outcome = "declined" if result.action == "decline" else "cancelled"
        raise ElicitationCancelled(f"Elicitation was {outcome} by the caller.")

    content = result.content or {}
    if field not in content:
        raise InvalidElicitationResponse(f"{field} is required and must be a string.")
    value = content[field]
    if not isinstance(value, str):
        raise InvalidElicitationResponse(f"{field} is required and must be a string.")
    if value not in options:
        raise InvalidElicitationResponse(
            f"{field} '{value}' is not one of the offered values."
        )
    return value
