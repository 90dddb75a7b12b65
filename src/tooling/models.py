"""Typed request/response shapes for tools, elicitation and Git refs."""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")

ZERO_OBJECT_ID = "0" * 40
HEADS_PREFIX = "refs/heads/"


class ToolResponse(BaseModel, Generic[T]):
    """Uniform success/failure envelope returned by every tool."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "ToolResponse[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_type: str | None = None) -> "ToolResponse[T]":
        return cls(success=False, error=error, error_type=error_type)


class GitRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    object_id: Optional[str] = Field(default=None, alias="objectId")


class RefList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: List[GitRef] = Field(default_factory=list)
    count: Optional[int] = None

    def branch_names(self) -> List[str]:
        return [
            ref.name[len(HEADS_PREFIX):]
            for ref in self.value
            if ref.name.startswith(HEADS_PREFIX)
        ]


class RefUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    old_object_id: str = Field(default=ZERO_OBJECT_ID, alias="oldObjectId")
    new_object_id: str = Field(alias="newObjectId")

    @classmethod
    def new_branch(cls, branch_name: str, object_id: str) -> "RefUpdate":
        return cls(name=f"{HEADS_PREFIX}{branch_name}", new_object_id=object_id)


class RefUpdateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    success: Optional[bool] = None
    update_status: Optional[str] = Field(default=None, alias="updateStatus")
    custom_message: Optional[str] = Field(default=None, alias="customMessage")


class RefUpdateResults(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: List[RefUpdateResult] = Field(default_factory=list)


class ElicitationRequest(BaseModel):
    message: str
    requested_schema: Dict[str, Any]

    @classmethod
    def choice(cls, message: str, field: str, options: List[str]) -> "ElicitationRequest":
        """Prompt for exactly one of ``options`` under ``field``."""

        return cls(
            message=message,
            requested_schema={
                "type": "object",
                "properties": {field: {"type": "string", "enum": list(options)}},
                "required": [field],
            },
        )


class ElicitationResult(BaseModel):
    action: Literal["accept", "decline", "cancel"]
    content: Optional[Dict[str, Any]] = None
