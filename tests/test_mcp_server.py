"""Tests for the MCP tool registrations."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from api.mcp_server import _bearer_from, build_mcp_server
from tooling import DevOpsTools


def _ctx(headers):
    request = SimpleNamespace(headers=headers) if headers is not None else None
    return SimpleNamespace(request_context=SimpleNamespace(request=request))


@pytest.mark.asyncio
async def test_registers_devops_tools(settings, tools: DevOpsTools) -> None:
    server = build_mcp_server(tools, settings)

    registered = {tool.name: tool for tool in await server.list_tools()}

    assert set(registered) == {
        "list_projects",
        "list_repositories",
        "list_branches",
        "create_branch",
    }
    create_schema = registered["create_branch"].inputSchema
    assert "parent_branch_name" in create_schema["properties"]
    assert "parent_branch_name" not in create_schema.get("required", [])
    assert "ctx" not in create_schema["properties"]


def test_bearer_is_read_from_inbound_request() -> None:
    assert _bearer_from(_ctx({"authorization": "Bearer caller-jwt"})) == "caller-jwt"
    assert _bearer_from(_ctx({"authorization": "Basic abc"})) is None
    assert _bearer_from(_ctx({})) is None
    assert _bearer_from(_ctx(None)) is None
