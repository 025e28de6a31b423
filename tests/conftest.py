"""Shared test fixtures: a GraphQL router on top of pytest-httpx and sample Linear nodes."""

import copy
import json
import re
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
from pytest_httpx import HTTPXMock

from linear_mcp.client.graphql import ENDPOINT, GraphQLTransport
from linear_mcp.client.linear import LinearClient
from linear_mcp.client.raw import RawQueryClient
from linear_mcp.dispatcher import Dispatcher

_OPERATION = re.compile(r"(query|mutation)\s+(\w+)")

Reply = dict[str, Any] | Callable[[dict[str, Any]], dict[str, Any]]


class GraphQLRouter:
    """Answers Linear GraphQL requests by operation name and records what was sent."""

    def __init__(self) -> None:
        self._replies: dict[str, tuple[Reply | None, list[dict[str, Any]] | None, int]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def on(
        self,
        operation: str,
        data: Reply | None = None,
        *,
        errors: list[dict[str, Any]] | None = None,
        status: int = 200,
    ) -> "GraphQLRouter":
        self._replies[operation] = (data, errors, status)
        return self

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]

    def variables(self, operation: str) -> list[dict[str, Any]]:
        return [variables for name, variables in self.calls if name == operation]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        match = _OPERATION.search(body["query"])
        assert match, f"query without an operation name: {body['query']}"
        operation = match.group(2)
        variables = body.get("variables") or {}
        self.calls.append((operation, variables))

        if operation not in self._replies:
            return httpx.Response(200, json={"errors": [{"message": f"unexpected operation {operation}"}]})
        data, errors, status = self._replies[operation]
        payload: dict[str, Any] = {"data": data(variables) if callable(data) else data}
        if errors:
            payload["errors"] = errors
        return httpx.Response(status, json=payload)


@pytest.fixture
def graphql(httpx_mock: HTTPXMock) -> GraphQLRouter:
    router = GraphQLRouter()
    httpx_mock.add_callback(router, url=ENDPOINT, is_reusable=True, is_optional=True)
    return router


@pytest.fixture
async def transport() -> AsyncIterator[GraphQLTransport]:
    t = GraphQLTransport("lin_api_test")
    yield t
    await t.aclose()


@pytest.fixture
def client(transport: GraphQLTransport) -> LinearClient:
    return LinearClient(transport)


@pytest.fixture
def raw(transport: GraphQLTransport) -> RawQueryClient:
    return RawQueryClient(transport)


@pytest.fixture
def dispatcher(client: LinearClient, raw: RawQueryClient) -> Dispatcher:
    return Dispatcher(client, raw)


@pytest.fixture
def read_only_dispatcher(client: LinearClient, raw: RawQueryClient) -> Dispatcher:
    return Dispatcher(client, raw, read_only=True)


# ---------------------------------------------------------------------------
# Sample nodes, shaped like the selections in linear_mcp.client.linear
# ---------------------------------------------------------------------------

_USER_REF = {
    "id": "user-1",
    "name": "Jane Doe",
    "email": "jane@example.com",
    "displayName": "jane",
    "avatarUrl": None,
}

_TEAM_REF = {"id": "team-1", "name": "Engineering", "key": "ENG"}

_ISSUE = {
    "id": "issue-1",
    "identifier": "ENG-1",
    "title": "Fix null check in auth middleware",
    "description": "Crashes on logout.\n\n![trace](https://uploads.linear.app/trace.png)",
    "priority": 2,
    "priorityLabel": "High",
    "estimate": 3,
    "url": "https://linear.app/acme/issue/ENG-1",
    "dueDate": None,
    "createdAt": "2024-01-01T00:00:00.000Z",
    "updatedAt": "2024-01-02T00:00:00.000Z",
    "startedAt": None,
    "completedAt": None,
    "canceledAt": None,
    "archivedAt": None,
    "state": {"id": "state-todo", "name": "Todo", "color": "#e2e2e2", "type": "unstarted"},
    "assignee": None,
    "creator": _USER_REF,
    "team": _TEAM_REF,
    "project": None,
    "cycle": None,
    "parent": None,
    "labels": {"nodes": [{"id": "label-1", "name": "bug", "color": "#eb5757"}]},
}

_TEAM = {
    **_TEAM_REF,
    "description": "Core product team",
    "color": "#5e6ad2",
    "icon": None,
    "timezone": "Europe/Berlin",
    "private": False,
    "cyclesEnabled": True,
    "createdAt": "2023-01-01T00:00:00.000Z",
    "updatedAt": "2023-06-01T00:00:00.000Z",
    "organization": {"id": "org-1", "name": "Acme", "urlKey": "acme"},
    "integrationsSettings": None,
}

_PROJECT = {
    "id": "project-1",
    "name": "Auth revamp",
    "description": "Rework login",
    "slugId": "auth-revamp",
    "icon": None,
    "color": "#bec2c8",
    "state": "started",
    "health": "onTrack",
    "progress": 0.4,
    "priority": 1,
    "startDate": "2024-01-01",
    "targetDate": "2024-03-31",
    "completedAt": None,
    "canceledAt": None,
    "createdAt": "2023-12-01T00:00:00.000Z",
    "updatedAt": "2024-01-10T00:00:00.000Z",
    "archivedAt": None,
    "url": "https://linear.app/acme/project/auth-revamp",
    "creator": _USER_REF,
    "lead": {**_USER_REF, "id": "user-2", "name": "Sam Lee", "email": "sam@example.com", "displayName": "sam"},
    "teams": {"nodes": [_TEAM_REF]},
}

_CYCLE = {
    "id": "cycle-1",
    "name": "Sprint 1",
    "number": 1,
    "description": None,
    "startsAt": "2024-01-01T00:00:00.000Z",
    "endsAt": "2024-01-15T00:00:00.000Z",
    "completedAt": None,
    "progress": 0.25,
    "createdAt": "2023-12-20T00:00:00.000Z",
    "updatedAt": "2024-01-02T00:00:00.000Z",
    "issueCountHistory": [4, 5],
    "completedIssueCountHistory": [0, 1],
    "scopeHistory": [8, 10],
    "completedScopeHistory": [0, 2],
    "team": _TEAM_REF,
}

_LABEL = {
    "id": "label-1",
    "name": "bug",
    "color": "#eb5757",
    "description": "Something is broken",
    "isGroup": False,
    "createdAt": "2023-01-01T00:00:00.000Z",
    "updatedAt": "2023-01-01T00:00:00.000Z",
    "team": _TEAM_REF,
    "parent": None,
}

_DOCUMENT = {
    "id": "doc-1",
    "title": "Auth design",
    "content": "# Design",
    "icon": None,
    "color": None,
    "slugId": "auth-design",
    "url": "https://linear.app/acme/document/auth-design",
    "createdAt": "2024-01-03T00:00:00.000Z",
    "updatedAt": "2024-01-04T00:00:00.000Z",
    "creator": _USER_REF,
    "project": {"id": "project-1", "name": "Auth revamp", "teams": {"nodes": [_TEAM_REF]}},
}

_COMMENT = {
    "id": "comment-1",
    "body": "Reproduced on staging.",
    "url": "https://linear.app/acme/issue/ENG-1#comment-1",
    "createdAt": "2024-01-02T10:00:00.000Z",
    "updatedAt": "2024-01-02T10:00:00.000Z",
    "user": _USER_REF,
    "issue": {"id": "issue-1", "identifier": "ENG-1", "title": "Fix null check in auth middleware"},
}

_USER = {**_USER_REF, "active": True, "admin": False, "createdAt": "2022-05-01T00:00:00.000Z", "url": None}


@pytest.fixture
def issue_node() -> dict[str, Any]:
    return copy.deepcopy(_ISSUE)


@pytest.fixture
def team_node() -> dict[str, Any]:
    return copy.deepcopy(_TEAM)


@pytest.fixture
def project_node() -> dict[str, Any]:
    return copy.deepcopy(_PROJECT)


@pytest.fixture
def cycle_node() -> dict[str, Any]:
    return copy.deepcopy(_CYCLE)


@pytest.fixture
def label_node() -> dict[str, Any]:
    return copy.deepcopy(_LABEL)


@pytest.fixture
def document_node() -> dict[str, Any]:
    return copy.deepcopy(_DOCUMENT)


@pytest.fixture
def comment_node() -> dict[str, Any]:
    return copy.deepcopy(_COMMENT)


@pytest.fixture
def user_node() -> dict[str, Any]:
    return copy.deepcopy(_USER)


@pytest.fixture
def page_info() -> Callable[..., dict[str, Any]]:
    def make(has_next: bool = False, end_cursor: str | None = None) -> dict[str, Any]:
        return {"hasNextPage": has_next, "endCursor": end_cursor, "hasPreviousPage": False, "startCursor": None}

    return make
