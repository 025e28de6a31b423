"""One coroutine per tool, registered by name in :data:`HANDLERS`.

Handlers follow three shapes: read-by-id (fetch, 404 on ``None``, resolve
relations, format), filtered list (build a filter from provided fields only,
fetch one page, format every node) and mutation (fetch the target first for
updates and deletes, send only provided fields, exactly one write).
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from linear_mcp import formatters as fmt
from linear_mcp import relations
from linear_mcp.client.linear import LinearClient
from linear_mcp.client.raw import RawQueryClient
from linear_mcp.errors import NotFoundError, ToolValidationError
from linear_mcp.models import DeleteResult, PageInfo, Projection
from linear_mcp.schemas import page_size, provided


@dataclass(frozen=True)
class Context:
    client: LinearClient
    raw: RawQueryClient


Handler = Callable[[Context, Any], Awaitable[Projection | dict[str, Any]]]

HANDLERS: dict[str, Handler] = {}


def handler(name: str) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        HANDLERS[name] = fn
        return fn

    return register


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require(node: fmt.Node | None, entity: str, entity_id: str) -> fmt.Node:
    if node is None:
        raise NotFoundError(entity, entity_id)
    return node


def _listing(key: str, connection: fmt.Node, formatter: Callable[[fmt.Node], Projection]) -> dict[str, Any]:
    return {
        key: [formatter(node).to_json() for node in fmt.nodes(connection) if node],
        "pageInfo": fmt.format_page_info(connection).to_json(),
    }


def _wire(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_filter(args: Any, paths: dict[str, tuple[str, ...]]) -> dict[str, Any]:
    """Nest every provided, non-null argument under its filter path.

    ``{"team_id": ("team", "id", "eq")}`` turns ``team_id="T1"`` into
    ``{"team": {"id": {"eq": "T1"}}}``; absent arguments never appear.
    """
    result: dict[str, Any] = {}
    for name, value in provided(args).items():
        path = paths.get(name)
        if path is None or value is None:
            continue
        node = result
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return result


def build_input(args: Any, fields: dict[str, str], *, keep_null: bool = True) -> dict[str, Any]:
    """Map provided arguments to a mutation input; an explicit null is forwarded only with *keep_null*."""
    return {
        fields[name]: _wire(value)
        for name, value in provided(args).items()
        if name in fields and (keep_null or value is not None)
    }


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

ISSUE_FILTER: dict[str, tuple[str, ...]] = {
    "team_id": ("team", "id", "eq"),
    "assignee_id": ("assignee", "id", "eq"),
    "status": ("state", "name", "eq"),
    "project_id": ("project", "id", "eq"),
    "creator_id": ("creator", "id", "eq"),
    "cycle_id": ("cycle", "id", "eq"),
    "parent_id": ("parent", "id", "eq"),
    "priority": ("priority", "eq"),
    "number": ("number", "eq"),
    "due_date": ("dueDate", "eq"),
    "due_date_gte": ("dueDate", "gte"),
    "due_date_lte": ("dueDate", "lte"),
    "created_at_gte": ("createdAt", "gte"),
    "created_at_lte": ("createdAt", "lte"),
    "updated_at_gte": ("updatedAt", "gte"),
    "updated_at_lte": ("updatedAt", "lte"),
    "completed_at_gte": ("completedAt", "gte"),
    "completed_at_lte": ("completedAt", "lte"),
    "canceled_at_gte": ("canceledAt", "gte"),
    "canceled_at_lte": ("canceledAt", "lte"),
    "started_at_gte": ("startedAt", "gte"),
    "started_at_lte": ("startedAt", "lte"),
    "archived_at_gte": ("archivedAt", "gte"),
    "archived_at_lte": ("archivedAt", "lte"),
    "title": ("title", "eq"),
    "title_contains": ("title", "containsIgnoreCase"),
    "description": ("description", "eq"),
    "description_contains": ("description", "containsIgnoreCase"),
    "estimate": ("estimate", "eq"),
    "estimate_gte": ("estimate", "gte"),
    "estimate_lte": ("estimate", "lte"),
    "label_ids": ("labels", "some", "id", "in"),
    "subscriber_ids": ("subscribers", "some", "id", "in"),
}

ISSUE_INPUT = {
    "title": "title",
    "team_id": "teamId",
    "description": "description",
    "assignee_id": "assigneeId",
    "priority": "priority",
    "labels": "labelIds",
    "project_id": "projectId",
    "cycle_id": "cycleId",
    "parent_id": "parentId",
    "due_date": "dueDate",
    "estimate": "estimate",
}


@handler("list_issues")
async def list_issues(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.issues(
        filter=build_filter(args, ISSUE_FILTER),
        first=page_size(args),
        after=args.after,
        order_by=args.order_by,
        include_archived=args.include_archived,
    )
    return _listing("issues", connection, fmt.format_issue)


@handler("get_issue")
async def get_issue(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.issue(args.issue_id), "Issue", args.issue_id)
    related = await relations.resolve_issue(ctx.client, node["id"])
    return fmt.format_issue_detail(node, related)


@handler("search_issues")
async def search_issues(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.search_issues(args.query, first=page_size(args), after=args.after)
    return _listing("issues", connection, fmt.format_issue)


@handler("create_issue")
async def create_issue(ctx: Context, args: Any) -> Projection:
    created = await ctx.client.create_issue(build_input(args, ISSUE_INPUT, keep_null=False))
    return fmt.format_issue(created)


async def resolve_state_id(client: LinearClient, issue: fmt.Node, status: str) -> str:
    """Match *status* against the issue's team workflow states, by id first, then by name ignoring case."""
    team = issue.get("team") or {}
    states = await client.team_states(team["id"]) if team.get("id") else []
    for state in states:
        if state.get("id") == status:
            return state["id"]
    wanted = status.casefold()
    for state in states:
        if (state.get("name") or "").casefold() == wanted:
            return state["id"]
    names = ", ".join(state["name"] for state in states if state.get("name")) or "(none)"
    raise NotFoundError("Status", status, hint=f"Available statuses: {names}")


@handler("update_issue")
async def update_issue(ctx: Context, args: Any) -> Projection:
    issue = _require(await ctx.client.issue(args.issue_id), "Issue", args.issue_id)
    update = build_input(args, {k: v for k, v in ISSUE_INPUT.items() if k != "team_id"})
    if args.status is not None:
        update["stateId"] = await resolve_state_id(ctx.client, issue, args.status)
    updated = await ctx.client.update_issue(issue["id"], update)
    return fmt.format_issue(updated)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@handler("get_comment")
async def get_comment(ctx: Context, args: Any) -> Projection:
    node = _require(await relations.fetch_comment(ctx.raw, args.comment_id), "Comment", args.comment_id)
    return fmt.format_comment(node)


@handler("create_comment")
async def create_comment(ctx: Context, args: Any) -> Projection:
    issue = _require(await ctx.client.issue(args.issue_id), "Issue", args.issue_id)
    created = await ctx.client.create_comment({"issueId": issue["id"], "body": args.body})
    return fmt.format_comment(created, issue=created.get("issue") or issue)


@handler("update_comment")
async def update_comment(ctx: Context, args: Any) -> Projection:
    _require(await relations.fetch_comment(ctx.raw, args.comment_id), "Comment", args.comment_id)
    updated = await ctx.client.update_comment(args.comment_id, {"body": args.body})
    return fmt.format_comment(updated)


@handler("delete_comment")
async def delete_comment(ctx: Context, args: Any) -> Projection:
    _require(await relations.fetch_comment(ctx.raw, args.comment_id), "Comment", args.comment_id)
    return DeleteResult(success=await ctx.client.delete_comment(args.comment_id))


# ---------------------------------------------------------------------------
# Teams & users
# ---------------------------------------------------------------------------


@handler("list_teams")
async def list_teams(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.teams(first=page_size(args), after=args.after)
    return _listing("teams", connection, fmt.format_team)


@handler("get_team")
async def get_team(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.team(args.team_id), "Team", args.team_id)
    related = await relations.resolve_team(ctx.client, node["id"])
    return fmt.format_team_detail(node, related)


@handler("list_users")
async def list_users(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.users(first=page_size(args), after=args.after, include_archived=args.include_archived)
    return _listing("users", connection, fmt.format_user)


@handler("get_user")
async def get_user(ctx: Context, args: Any) -> Projection:
    return fmt.format_user(_require(await ctx.client.user(args.user_id), "User", args.user_id))


@handler("me")
async def me(ctx: Context, args: Any) -> Projection:
    return fmt.format_viewer(await ctx.client.viewer())


# ---------------------------------------------------------------------------
# Projects, roadmaps, initiatives
# ---------------------------------------------------------------------------

PROJECT_FILTER: dict[str, tuple[str, ...]] = {
    "team_id": ("accessibleTeams", "some", "id", "eq"),
    "name": ("name", "eq"),
    "state": ("state", "eq"),
    "health": ("health", "eq"),
    "lead_id": ("lead", "id", "eq"),
    "creator_id": ("creator", "id", "eq"),
    "created_after": ("createdAt", "gt"),
    "created_before": ("createdAt", "lt"),
    "updated_after": ("updatedAt", "gt"),
    "updated_before": ("updatedAt", "lt"),
    "completed_after": ("completedAt", "gt"),
    "completed_before": ("completedAt", "lt"),
    "canceled_after": ("canceledAt", "gt"),
    "canceled_before": ("canceledAt", "lt"),
    "start_date": ("startDate", "eq"),
    "target_date": ("targetDate", "eq"),
}


@handler("list_projects")
async def list_projects(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.projects(
        filter=build_filter(args, PROJECT_FILTER),
        first=page_size(args),
        after=args.after,
        order_by=args.order_by,
        include_archived=args.include_archived,
    )
    return _listing("projects", connection, fmt.format_project)


@handler("get_project")
async def get_project(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.project(args.project_id), "Project", args.project_id)
    related = await relations.resolve_project(ctx.client, ctx.raw, node["id"])
    return fmt.format_project_detail(node, related)


async def _with_projects(
    key: str,
    connection: fmt.Node,
    fetch: Callable[[str], Awaitable[list[fmt.Node]]],
    formatter: Callable[..., Projection],
    include: bool | None,
) -> dict[str, Any]:
    """Format a roadmap or initiative page, fetching each node's projects concurrently when asked."""
    items = [node for node in fmt.nodes(connection) if node]
    if include:
        projects = await relations.fetch_projects_per_node(fetch, items)
        formatted = [formatter(node, found) for node, found in zip(items, projects, strict=True)]
    else:
        formatted = [formatter(node) for node in items]
    return {key: [item.to_json() for item in formatted], "pageInfo": fmt.format_page_info(connection).to_json()}


@handler("list_roadmaps")
async def list_roadmaps(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.roadmaps(
        first=page_size(args), after=args.after, order_by=args.order_by, include_archived=args.include_archived
    )
    return await _with_projects(
        "roadmaps", connection, ctx.client.roadmap_projects, fmt.format_roadmap, args.include_projects
    )


@handler("get_roadmap")
async def get_roadmap(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.roadmap(args.roadmap_id), "Roadmap", args.roadmap_id)
    if not args.include_projects:
        return fmt.format_roadmap(node)
    return fmt.format_roadmap(node, await ctx.client.roadmap_projects(node["id"]))


@handler("list_initiatives")
async def list_initiatives(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.initiatives(
        first=page_size(args), after=args.after, order_by=args.order_by, include_archived=args.include_archived
    )
    return await _with_projects(
        "initiatives", connection, ctx.client.initiative_projects, fmt.format_initiative, args.include_projects
    )


@handler("get_initiative")
async def get_initiative(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.initiative(args.initiative_id), "Initiative", args.initiative_id)
    if not args.include_projects:
        return fmt.format_initiative(node)
    return fmt.format_initiative(node, await ctx.client.initiative_projects(node["id"]))


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

LABEL_INPUT = {
    "team_id": "teamId",
    "name": "name",
    "color": "color",
    "description": "description",
    "parent_id": "parentId",
}


@handler("list_labels")
async def list_labels(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.issue_labels(
        filter=build_filter(args, {"team_id": ("team", "id", "eq")}), first=page_size(args), after=args.after
    )
    return _listing("labels", connection, fmt.format_label)


@handler("get_label")
async def get_label(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.issue_label(args.label_id), "Label", args.label_id)
    count, truncated = await ctx.client.label_issue_count(node["id"])
    return fmt.format_label_detail(node, count, truncated=truncated)


@handler("create_label")
async def create_label(ctx: Context, args: Any) -> Projection:
    created = await ctx.client.create_label(build_input(args, LABEL_INPUT, keep_null=False))
    return fmt.format_label(created)


@handler("update_label")
async def update_label(ctx: Context, args: Any) -> Projection:
    label = _require(await ctx.client.issue_label(args.label_id), "Label", args.label_id)
    fields = {k: v for k, v in LABEL_INPUT.items() if k in ("name", "color", "description")}
    updated = await ctx.client.update_label(label["id"], build_input(args, fields))
    return fmt.format_label(updated)


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

CYCLE_INPUT = {
    "team_id": "teamId",
    "name": "name",
    "description": "description",
    "start_date": "startsAt",
    "end_date": "endsAt",
}


@handler("list_cycles")
async def list_cycles(ctx: Context, args: Any) -> dict[str, Any]:
    connection = await ctx.client.cycles(
        filter=build_filter(args, {"team_id": ("team", "id", "eq")}), first=page_size(args), after=args.after
    )
    return _listing("cycles", connection, fmt.format_cycle)


@handler("get_cycle")
async def get_cycle(ctx: Context, args: Any) -> Projection:
    node = _require(await ctx.client.cycle(args.cycle_id), "Cycle", args.cycle_id)
    if not args.include_issues:
        return fmt.format_cycle(node)
    issues = await relations.fetch_cycle_issues(ctx.raw, node["id"], first=page_size(args))
    return fmt.format_cycle_with_issues(node, issues)


@handler("create_cycle")
async def create_cycle(ctx: Context, args: Any) -> Projection:
    created = await ctx.client.create_cycle(build_input(args, CYCLE_INPUT, keep_null=False))
    return fmt.format_cycle(created)


@handler("update_cycle")
async def update_cycle(ctx: Context, args: Any) -> Projection:
    cycle = _require(await ctx.client.cycle(args.cycle_id), "Cycle", args.cycle_id)
    fields = {k: v for k, v in CYCLE_INPUT.items() if k != "team_id"}
    updated = await ctx.client.update_cycle(cycle["id"], build_input(args, fields))
    return fmt.format_cycle(updated)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@handler("list_documents")
async def list_documents(ctx: Context, args: Any) -> dict[str, Any]:
    first = page_size(args)
    if args.team_id is None:
        connection = await ctx.client.documents(first=first, after=args.after)
        return _listing("documents", connection, fmt.format_document)
    if args.after is not None:
        raise ToolValidationError(["after: cannot be combined with teamId"])
    # One extra document tells whether the team has more than a page.
    found, more_projects = await relations.fetch_team_documents(ctx.raw, args.team_id, first=first + 1)
    return {
        "documents": [fmt.format_document(node).to_json() for node in found[:first]],
        "pageInfo": PageInfo(has_next_page=more_projects or len(found) > first).to_json(),
    }


@handler("get_document")
async def get_document(ctx: Context, args: Any) -> Projection:
    return fmt.format_document(_require(await ctx.client.document(args.document_id), "Document", args.document_id))


@handler("create_document")
async def create_document(ctx: Context, args: Any) -> Projection:
    # Documents belong to projects; the team is derived from the project on read.
    created = await ctx.client.create_document(
        build_input(args, {"title": "title", "content": "content", "project_id": "projectId"}, keep_null=False)
    )
    return fmt.format_document(created)


@handler("update_document")
async def update_document(ctx: Context, args: Any) -> Projection:
    document = _require(await ctx.client.document(args.document_id), "Document", args.document_id)
    update = build_input(args, {"title": "title", "content": "content"})
    updated = await ctx.client.update_document(document["id"], update)
    return fmt.format_document(updated)
