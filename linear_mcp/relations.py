"""Relation resolution: concurrent connection fetches joined once per handler.

One-hop references are already selected inline by the typed client, so what
remains here are connections (comments, members, ...) and the lookups only
the raw query path can reach.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from linear_mcp.client.linear import LinearClient
from linear_mcp.client.raw import COMMENT_BY_ID, CYCLE_ISSUES, PROJECT_MEMBERS, TEAM_DOCUMENTS, RawQueryClient
from linear_mcp.errors import LinearAPIError, is_missing_entity, is_rate_limited
from linear_mcp.formatters import IssueRelations, Node, ProjectRelations, TeamRelations, nodes

logger = logging.getLogger(__name__)

TEAM_DOCUMENT_PROJECT_PAGES = 4


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await every awaitable concurrently and return their results in order.

    The first failure cancels the remaining tasks and is re-raised as-is, so
    callers never see a partially resolved result.
    """

    async def _run(aw: Awaitable[Any]) -> Any:
        return await aw

    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(_run(aw)) for aw in aws]
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None
    return [task.result() for task in tasks]


async def resolve_issue(client: LinearClient, issue_id: str) -> IssueRelations:
    comments, children, attachments = await gather_all(
        client.issue_comments(issue_id),
        client.issue_children(issue_id),
        client.issue_attachments(issue_id),
    )
    return IssueRelations(comments=comments, children=children, attachments=attachments)


async def resolve_team(client: LinearClient, team_id: str) -> TeamRelations:
    states, memberships, templates = await gather_all(
        client.team_states(team_id),
        client.team_memberships(team_id),
        client.team_templates(team_id),
    )
    return TeamRelations(states=states, memberships=memberships, templates=templates)


async def fetch_project_members(raw: RawQueryClient, project_id: str) -> list[Node] | None:
    """Return the project's members, or None when the membership query fails.

    Rate-limit failures still propagate; any other upstream error degrades the
    project to its creator and lead.
    """
    try:
        data = await raw.raw_query(PROJECT_MEMBERS, {"id": project_id})
    except LinearAPIError as exc:
        if is_rate_limited(exc):
            raise
        logger.warning("Project members unavailable for %s, using creator and lead: %s", project_id, exc)
        return None
    project = data.get("project") or {}
    return nodes(project.get("members"))


async def resolve_project(client: LinearClient, raw: RawQueryClient, project_id: str) -> ProjectRelations:
    members, milestones, updates = await gather_all(
        fetch_project_members(raw, project_id),
        client.project_milestones(project_id),
        client.project_updates(project_id),
    )
    return ProjectRelations(members=members, milestones=milestones, updates=updates)


async def fetch_team_documents(raw: RawQueryClient, team_id: str, *, first: int) -> tuple[list[Node], bool]:
    """Documents of the team's projects, deduplicated by id.

    Project pages are walked until *first* documents are collected or
    ``TEAM_DOCUMENT_PROJECT_PAGES`` pages have been read. The second element
    is true when projects were left unread, so more documents may exist.
    """
    seen: dict[str, Node] = {}
    variables: dict[str, Any] = {"teamId": team_id, "first": first}
    for _ in range(TEAM_DOCUMENT_PROJECT_PAGES):
        data = await raw.raw_query(TEAM_DOCUMENTS, variables)
        team = data.get("team")
        if not team:
            return list(seen.values()), False
        projects = team.get("projects") or {}
        for project in nodes(projects):
            if not project:
                continue
            for document in nodes(project.get("documents")):
                if document and document.get("id") and document["id"] not in seen:
                    seen[document["id"]] = document
        page_info = projects.get("pageInfo") or {}
        more = bool(page_info.get("hasNextPage") and page_info.get("endCursor"))
        if not more or len(seen) >= first:
            return list(seen.values()), more
        variables = {**variables, "projectsAfter": page_info["endCursor"]}
    logger.warning("Stopped after %d project pages for team %s", TEAM_DOCUMENT_PROJECT_PAGES, team_id)
    return list(seen.values()), True


async def fetch_cycle_issues(raw: RawQueryClient, cycle_id: str, *, first: int, after: str | None = None) -> Node:
    variables: dict[str, Any] = {"id": cycle_id, "first": first}
    if after:
        variables["after"] = after
    data = await raw.raw_query(CYCLE_ISSUES, variables)
    cycle = data.get("cycle") or {}
    return cycle.get("issues") or {"nodes": [], "pageInfo": {}}


async def fetch_comment(raw: RawQueryClient, comment_id: str) -> Node | None:
    try:
        data = await raw.raw_query(COMMENT_BY_ID, {"id": comment_id})
    except LinearAPIError as exc:
        if is_missing_entity(exc):
            return None
        raise
    return data.get("comment")


async def fetch_projects_per_node(
    fetch: Callable[[str], Awaitable[list[Node]]], items: list[Node]
) -> list[list[Node]]:
    """Run *fetch(node_id)* for every node in a page concurrently."""
    return await gather_all(*(fetch(item["id"]) for item in items))
