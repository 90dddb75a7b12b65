"""Fakes shared across the test suite."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx

from config import IdentitySettings, Settings
from tooling.models import ElicitationRequest, ElicitationResult


PARENT_OBJECT_ID = "abc123" + "0" * 34
DEV_OBJECT_ID = "def456" + "1" * 34


def build_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "identity": IdentitySettings(
            client_id="client-123", client_secret="s3cret", tenant_id="tenant-abc"
        ),
    }
    values.update(overrides)
    return Settings(**values)


class FakeIdentityProvider:
    """Token endpoint stand-in issuing numbered downstream tokens."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.error: Optional[Dict[str, Any]] = None
        self.status_code = 200
        self.expires_in = 3600
        self.raise_transport_error = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_transport_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.error is not None:
            return httpx.Response(self.status_code, json=self.error)
        return httpx.Response(
            200,
            json={
                "token_type": "Bearer",
                "scope": "499b84ac-1321-427f-aa17-267ca6975798/.default",
                "expires_in": self.expires_in,
                "access_token": f"downstream-token-{len(self.requests)}",
            },
        )

    def form(self, index: int = -1) -> Dict[str, str]:
        body = self.requests[index].content.decode("utf-8")
        return dict(httpx.QueryParams(body).multi_items())


class FakeDevOps:
    """Minimal Azure DevOps refs/projects API."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.branch_refs: List[Dict[str, Any]] = [
            {"name": "refs/heads/main", "objectId": PARENT_OBJECT_ID},
            {"name": "refs/heads/dev", "objectId": DEV_OBJECT_ID},
        ]
        self.list_status = 200
        self.lookup_status = 200
        self.lookup_override: Optional[Dict[str, Any]] = None
        self.create_status = 201
        self.create_payload: Dict[str, Any] = {
            "value": [{"name": "refs/heads/feature-x", "success": True, "updateStatus": "succeeded"}],
            "count": 1,
        }

    @property
    def posts(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def gets(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    def post_body(self, index: int = -1) -> Any:
        return json.loads(self.posts[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/refs"):
            if self.create_status >= 400:
                return httpx.Response(self.create_status, text="TF401019: forbidden")
            return httpx.Response(self.create_status, json=self.create_payload)
        if path.endswith("/_apis/projects"):
            return httpx.Response(200, json={"count": 1, "value": [{"name": "app"}]})
        if path.endswith("/_apis/git/repositories"):
            return httpx.Response(200, json={"count": 1, "value": [{"name": "core"}]})
        if path.endswith("/refs"):
            if self.list_status >= 400:
                return httpx.Response(self.list_status, text="list failed")
            return httpx.Response(
                200, json={"value": self.branch_refs, "count": len(self.branch_refs)}
            )
        if "/refs/heads/" in path:
            if self.lookup_status >= 400:
                return httpx.Response(self.lookup_status, text="not found")
            if self.lookup_override is not None:
                return httpx.Response(200, json=self.lookup_override)
            branch = path.partition("/refs/heads/")[2]
            matches = [ref for ref in self.branch_refs if ref["name"] == f"refs/heads/{branch}"]
            return httpx.Response(200, json={"value": matches, "count": len(matches)})
        return httpx.Response(404, text=f"unexpected path {path}")


@dataclass
class ScriptedChannel:
    """Elicitation channel answering from a script and recording prompts."""

    result: Optional[ElicitationResult] = None
    requests: List[ElicitationRequest] = field(default_factory=list)
    started: asyncio.Event = field(default_factory=asyncio.Event)
    responder: Optional[Callable[[ElicitationRequest], ElicitationResult]] = None

    async def elicit(self, request: ElicitationRequest) -> ElicitationResult:
        self.requests.append(request)
        self.started.set()
        if self.responder is not None:
            return self.responder(request)
        if self.result is None:
            await asyncio.Event().wait()
        return self.result


def accept(content: Dict[str, Any]) -> ElicitationResult:
    return ElicitationResult(action="accept", content=content)
