"""Azure DevOps tools exposed to MCP callers."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from api.metrics import metrics
from observability.context import scoped_log_context
from observability.errors import GatewayError, error_recorder
from tooling.elicitation import ElicitationChannel, elicit_choice
from tooling.errors import (
    DependencyResolutionError,
    DownstreamError,
    ParentNotFoundError,
)
from tooling.models import (
    HEADS_PREFIX,
    GitRef,
    RefList,
    RefUpdate,
    RefUpdateResults,
    ToolResponse,
)


T = TypeVar("T")

logger = logging.getLogger("devops_gateway.tooling")

PARENT_BRANCH_FIELD = "parentBranch"
REFS_API_VERSION = "7.1"


def _segment(value: str) -> str:
    return quote(value, safe="")


class DevOpsTools:
    """List and create operations against Azure DevOps Git repositories.

    Every public method returns a :class:`ToolResponse`; failures are logged,
    recorded and converted at this boundary instead of being raised to the
    host. ``asyncio.CancelledError`` is the one exception that is re-raised.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def list_projects(self, org_name: str) -> ToolResponse[Any]:
        return await self._run(
            "list_projects",
            lambda: self._get_json(f"{_segment(org_name)}/_apis/projects"),
            org=org_name,
        )

    async def list_repositories(
        self, org_name: str, project_name: str
    ) -> ToolResponse[Any]:
        path = f"{_segment(org_name)}/{_segment(project_name)}/_apis/git/repositories"
        return await self._run(
            "list_repositories",
            lambda: self._get_json(path),
            org=org_name,
            project=project_name,
        )

    async def list_branches(
        self, org_name: str, project_name: str, repository_name: str
    ) -> ToolResponse[List[str]]:
        return await self._run(
            "list_branches",
            lambda: self._fetch_branches(org_name, project_name, repository_name),
            org=org_name,
            project=project_name,
            repository=repository_name,
        )

    async def create_branch(
        self,
        org_name: str,
        project_name: str,
        repository_name: str,
        new_branch_name: str,
        parent_branch_name: str = "",
        *,
        channel: Optional[ElicitationChannel] = None,
    ) -> ToolResponse[str]:
        """Create ``new_branch_name``; ask the caller for the parent when omitted."""

        return await self._run(
            "create_branch",
            lambda: self._create_branch(
                org_name,
                project_name,
                repository_name,
                new_branch_name,
                parent_branch_name,
                channel,
            ),
            org=org_name,
            project=project_name,
            repository=repository_name,
            branch=new_branch_name,
        )

    async def _create_branch(
        self,
        org_name: str,
        project_name: str,
        repository_name: str,
        new_branch_name: str,
        parent_branch_name: str,
        channel: Optional[ElicitationChannel],
    ) -> str:
        parent = parent_branch_name.strip() if parent_branch_name else ""
        if not parent:
            parent = await self._ask_for_parent(
                org_name, project_name, repository_name, channel
            )
        object_id = await self._resolve_parent(
            org_name, project_name, repository_name, parent
        )
        await self._create_ref(
            org_name, project_name, repository_name, new_branch_name, object_id
        )
        logger.info(
            {
                "event": "branch.created",
                "branch": new_branch_name,
                "parent": parent,
                "repository": repository_name,
            }
        )
        return f"Branch {new_branch_name} created successfully from {parent}."

    async def _ask_for_parent(
        self,
        org_name: str,
        project_name: str,
        repository_name: str,
        channel: Optional[ElicitationChannel],
    ) -> str:
        if channel is None:
            raise DependencyResolutionError(
                "Elicitation required but no caller channel is available."
            )
        try:
            branches = await self._fetch_branches(org_name, project_name, repository_name)
        except (GatewayError, httpx.HTTPError) as exc:
            raise DependencyResolutionError(
                f"Could not retrieve branches for elicitation: {exc}"
            ) from exc
        if not branches:
            raise DependencyResolutionError(
                f"Could not retrieve branches for elicitation: repository "
                f"{repository_name} has no branches"
            )
        return await elicit_choice(
            channel,
            message=(
                "From which branch do you want to create your new branch in "
                f"repository {repository_name}?"
            ),
            field=PARENT_BRANCH_FIELD,
            options=branches,
        )

    async def _resolve_parent(
        self,
        org_name: str,
        project_name: str,
        repository_name: str,
        parent_branch: str,
    ) -> str:
        path = (
            f"{self._repository_path(org_name, project_name, repository_name)}"
            f"/refs/heads/{_segment(parent_branch)}"
        )
        try:
            response = await self._get(path)
            refs = RefList.model_validate(response.json())
        except DownstreamError as exc:
            raise ParentNotFoundError(parent_branch, f"lookup returned {exc.status}") from exc
        except httpx.HTTPError as exc:
            raise ParentNotFoundError(parent_branch, str(exc)) from exc
        except (ValueError, ValidationError) as exc:
            raise ParentNotFoundError(parent_branch, "malformed reference response") from exc

        ref = self._pick_ref(refs.value, parent_branch)
        if ref is None or not ref.object_id:
            raise ParentNotFoundError(parent_branch)
        return ref.object_id

    async def _create_ref(
        self,
        org_name: str,
        project_name: str,
        repository_name: str,
        new_branch_name: str,
        object_id: str,
    ) -> None:
        path = f"{self._repository_path(org_name, project_name, repository_name)}/refs"
        body = [RefUpdate.new_branch(new_branch_name, object_id).model_dump(by_alias=True)]
        response = await self._client.post(
            path, params={"api-version": REFS_API_VERSION}, json=body
        )
        if not response.is_success:
            raise DownstreamError(response.status_code, response.text)

        # The batch endpoint reports per-ref rejections with a 200 status.
        try:
            results = RefUpdateResults.model_validate(response.json())
        except (ValueError, ValidationError):
            return
        for result in results.value:
            if result.success is False:
                raise DownstreamError(
                    response.status_code,
                    response.text,
                    message=(
                        f"Azure DevOps rejected {result.name or new_branch_name}: "
                        f"{result.custom_message or result.update_status}"
                    ),
                )

    async def _fetch_branches(
        self, org_name: str, project_name: str, repository_name: str
    ) -> List[str]:
        path = f"{self._repository_path(org_name, project_name, repository_name)}/refs"
        response = await self._get(path, params={"filter": "heads/"})
        try:
            refs = RefList.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise DownstreamError(
                response.status_code,
                response.text,
                message=f"Unexpected reference list payload: {exc}",
            ) from exc
        return refs.branch_names()

    async def _get_json(self, path: str) -> Any:
        response = await self._get(path)
        try:
            return response.json()
        except ValueError as exc:
            raise DownstreamError(
                response.status_code, response.text, message="Azure DevOps returned a non-JSON body"
            ) from exc

    async def _get(
        self, path: str, params: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        response = await self._client.get(path, params=params)
        if not response.is_success:
            raise DownstreamError(response.status_code, response.text)
        return response

    @staticmethod
    def _repository_path(org_name: str, project_name: str, repository_name: str) -> str:
        return (
            f"{_segment(org_name)}/{_segment(project_name)}"
            f"/_apis/git/repositories/{_segment(repository_name)}"
        )

    @staticmethod
    def _pick_ref(refs: List[GitRef], branch: str) -> Optional[GitRef]:
        # The lookup is a prefix filter: "ma" also returns refs/heads/main.
        wanted = f"{HEADS_PREFIX}{branch}"
        for ref in refs:
            if ref.name == wanted:
                return ref
        return None

    async def _run(
        self,
        tool: str,
        operation: Callable[[], Awaitable[T]],
        **fields: str,
    ) -> ToolResponse[T]:
        """Run one invocation and convert every failure into a failed response.

        ``asyncio.CancelledError`` is the exception: it is logged, counted as a
        failure and re-raised instead of returned as a ``cancelled`` response.
        The MCP session answers cancelled requests itself and its task group
        has to observe the cancellation. A caller declining the elicitation
        still comes back as a response with ``error_type="cancelled"``.
        """

        start = perf_counter()
        success = False
        error_type: Optional[str] = None
        with scoped_log_context(tool=tool, **fields):
            try:
                data = await operation()
                success = True
                return ToolResponse.ok(data)
            except GatewayError as exc:
                error_type = exc.kind
                self._record_failure(tool, exc, error_type)
                return ToolResponse.fail(str(exc), error_type)
            except httpx.HTTPError as exc:
                error_type = "transport_error"
                self._record_failure(tool, exc, error_type)
                return ToolResponse.fail(f"Azure DevOps request failed: {exc}", error_type)
            except asyncio.CancelledError:
                error_type = "cancelled"
                logger.info({"event": "tool.cancelled", "tool": tool})
                raise
            except Exception as exc:  # noqa: BLE001
                error_type = "internal_error"
                self._record_failure(tool, exc, error_type)
                return ToolResponse.fail(f"{tool} failed unexpectedly: {exc}", error_type)
            finally:
                latency_ms = (perf_counter() - start) * 1000
                metrics.record_tool_invocation(
                    tool_name=tool,
                    latency_ms=latency_ms,
                    success=success,
                    error_type=error_type,
                )
                logger.log(
                    logging.INFO if success else logging.WARNING,
                    {
                        "event": "tool.invoke",
                        "tool": tool,
                        "latency_ms": round(latency_ms, 3),
                        "status": "success" if success else "failure",
                        "error_type": error_type,
                    },
                )

    @staticmethod
    def _record_failure(tool: str, exc: Exception, error_type: str) -> None:
        details: Dict[str, Any] = {}
        if isinstance(exc, DownstreamError):
            details["status"] = exc.status
        logger.warning(
            {"event": "tool.failed", "tool": tool, "error_type": error_type, "message": str(exc)},
            exc_info=not isinstance(exc, GatewayError),
        )
        error_recorder.record(
            event="tool.failed",
            message=str(exc),
            error_type=error_type,
            details=details or None,
        )
