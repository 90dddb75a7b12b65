"""Failure taxonomy for DevOps tool invocations."""

from __future__ import annotations

from observability.errors import GatewayError


class ToolError(GatewayError):
    """Base class for failures converted into a failed ToolResponse."""

    kind = "tool_error"


class DownstreamError(ToolError):
    """Azure DevOps answered with a non-success status."""

    kind = "downstream_error"

    def __init__(self, status: int, body: str, *, message: str | None = None) -> None:
        super().__init__(message or f"Azure DevOps request failed with status {status}: {body}")
        self.status = status
        self.body = body


class DependencyResolutionError(ToolError):
    """Candidates needed to ask the caller for a missing value were unavailable."""

    kind = "dependency_resolution_error"


class InvalidElicitationResponse(ToolError):
    """The caller's structured answer was missing, malformed or out of set."""

    kind = "invalid_elicitation_response"


class ElicitationCancelled(ToolError):
    """The caller declined or cancelled the elicitation."""

    kind = "cancelled"


class ElicitationFailed(ToolError):
    """The caller could not be asked, e.g. the client does not support elicitation."""

    kind = "elicitation_failed"


class ParentNotFoundError(ToolError):
    kind = "parent_not_found"

    def __init__(self, parent_branch: str, reason: str | None = None) -> None:
        message = f"Could not find objectId for branch {parent_branch}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.parent_branch = parent_branch
