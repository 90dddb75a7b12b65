"""Azure DevOps tool surface with interactive elicitation."""

from .client import create_downstream_client
from .devops import DevOpsTools
from .elicitation import ElicitationChannel, McpElicitationChannel, elicit_choice
from .errors import (
    DependencyResolutionError,
    DownstreamError,
    ElicitationCancelled,
    ElicitationFailed,
    InvalidElicitationResponse,
    ParentNotFoundError,
    ToolError,
)
from .models import ElicitationRequest, ElicitationResult, ToolResponse

__all__ = [
    "DependencyResolutionError",
    "DevOpsTools",
    "DownstreamError",
    "ElicitationCancelled",
    "ElicitationChannel",
    "ElicitationFailed",
    "ElicitationRequest",
    "ElicitationResult",
    "InvalidElicitationResponse",
    "McpElicitationChannel",
    "ParentNotFoundError",
    "ToolError",
    "ToolResponse",
    "create_downstream_client",
    "elicit_choice",
]
