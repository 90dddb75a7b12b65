"""MCP tool registrations binding the caller credential for each call."""

from contextlib import contextmanager
from typing import Annotated, Iterator, Optional

from mcp.server.fastmcp import Context, FastMCP
from pydantic import Field

from config import Settings
from security import caller_credential, parse_bearer
from tooling import DevOpsTools, McpElicitationChannel, ToolResponse


OrgName = Annotated[str, Field(description="Organization name in Azure DevOps")]
ProjectName = Annotated[
    str, Field(description="Project name for given organization in Azure DevOps")
]
RepositoryName = Annotated[
    str, Field(description="Repository name for given project in Azure DevOps")
]


def _bearer_from(ctx: Context) -> Optional[str]:
    request = getattr(ctx.request_context, "request", None)
    if request is None:
        return None
    return parse_bearer(request.headers.get("authorization"))


@contextmanager
def _as_caller(ctx: Context) -> Iterator[None]:
    with caller_credential(_bearer_from(ctx)):
        yield


def build_mcp_server(tools: DevOpsTools, settings: Settings) -> FastMCP:
    server = FastMCP(
        settings.project_name,
        host="0.0.0.0" if settings.resource_fqdn else "127.0.0.1",
        streamable_http_path="/mcp",
    )

    @server.tool(description="List all Azure DevOps projects by organization name")
    async def list_projects(org_name: OrgName, ctx: Context) -> ToolResponse:
        with _as_caller(ctx):
            return await tools.list_projects(org_name)

    @server.tool(
        description="List repositories for a specific project in an Azure Devops organization"
    )
    async def list_repositories(
        org_name: OrgName, project_name: ProjectName, ctx: Context
    ) -> ToolResponse:
        with _as_caller(ctx):
            return await tools.list_repositories(org_name, project_name)

    @server.tool(
        description=(
            "List branches for a given project and repository in an Azure Devops organization"
        )
    )
    async def list_branches(
        org_name: OrgName,
        project_name: ProjectName,
        repository_name: RepositoryName,
        ctx: Context,
    ) -> ToolResponse:
        with _as_caller(ctx):
            return await tools.list_branches(org_name, project_name, repository_name)

    @server.tool(
        description=(
            "Create a new branch in a repository. If the parent branch is not "
            "provided the user is asked to pick one."
        )
    )
    async def create_branch(
        org_name: OrgName,
        project_name: ProjectName,
        repository_name: RepositoryName,
        new_branch_name: Annotated[str, Field(description="Name of the new branch")],
        ctx: Context,
        parent_branch_name: Annotated[
            str,
            Field(description="Name of the parent branch from which new branch will be created."),
        ] = "",
    ) -> ToolResponse:
        channel = McpElicitationChannel(ctx.session, related_request_id=ctx.request_id)
        with _as_caller(ctx):
            return await tools.create_branch(
                org_name,
                project_name,
                repository_name,
                new_branch_name,
                parent_branch_name,
                channel=channel,
            )

    return server
