"""Typed Linear client: fixed selections for by-id reads, filtered pages and mutations.

One-hop references (assignee, state, team, ...) are selected inline so the
returned nodes carry them already projected; connections that can grow
(comments, children, members, ...) have their own methods so callers can
fetch them concurrently.
"""

import logging
from typing import Any

from linear_mcp.client.base import QueryExecutor
from linear_mcp.errors import LinearAPIError, is_missing_entity

logger = logging.getLogger(__name__)

# Unpaged child connections are read as one page of this size.
CHILD_PAGE_SIZE = 250
# Issue counts stop here and are reported as a lower bound.
LABEL_ISSUE_COUNT_MAX_PAGES = 4

PAGE_INFO = "pageInfo { hasNextPage endCursor hasPreviousPage startCursor }"

USER_REF = "id name email displayName avatarUrl"
USER_FIELDS = f"{USER_REF} active admin createdAt url"
TEAM_REF = "id name key"

ISSUE_FIELDS = f"""
    id
    identifier
    title
    description
    priority
    priorityLabel
    estimate
    url
    dueDate
    createdAt
    updatedAt
    startedAt
    completedAt
    canceledAt
    archivedAt
    state {{ id name color type }}
    assignee {{ {USER_REF} }}
    creator {{ {USER_REF} }}
    team {{ {TEAM_REF} }}
    project {{ id name }}
    cycle {{ id name number }}
    parent {{ id identifier title }}
    labels {{ nodes {{ id name color }} }}
"""

COMMENT_FIELDS = f"""
    id
    body
    url
    createdAt
    updatedAt
    user {{ {USER_REF} }}
    issue {{ id identifier title }}
"""

TEAM_FIELDS = """
    id
    name
    key
    description
    color
    icon
    timezone
    private
    cyclesEnabled
    createdAt
    updatedAt
    organization { id name urlKey }
    integrationsSettings { id }
"""

PROJECT_FIELDS = f"""
    id
    name
    description
    slugId
    icon
    color
    state
    health
    progress
    priority
    startDate
    targetDate
    completedAt
    canceledAt
    createdAt
    updatedAt
    archivedAt
    url
    creator {{ {USER_REF} }}
    lead {{ {USER_REF} }}
    teams {{ nodes {{ {TEAM_REF} }} }}
"""

CYCLE_FIELDS = f"""
    id
    name
    number
    description
    startsAt
    endsAt
    completedAt
    progress
    createdAt
    updatedAt
    issueCountHistory
    completedIssueCountHistory
    scopeHistory
    completedScopeHistory
    team {{ {TEAM_REF} }}
"""

LABEL_FIELDS = f"""
    id
    name
    color
    description
    isGroup
    createdAt
    updatedAt
    team {{ {TEAM_REF} }}
    parent {{ id name color }}
"""

DOCUMENT_FIELDS = f"""
    id
    title
    content
    icon
    color
    slugId
    url
    createdAt
    updatedAt
    creator {{ {USER_REF} }}
    project {{ id name teams {{ nodes {{ {TEAM_REF} }} }} }}
"""

ROADMAP_FIELDS = f"""
    id
    name
    description
    color
    slugId
    url
    createdAt
    updatedAt
    archivedAt
    creator {{ {USER_REF} }}
"""

INITIATIVE_FIELDS = f"""
    id
    name
    description
    color
    icon
    status
    targetDate
    url
    createdAt
    updatedAt
    archivedAt
    creator {{ {USER_REF} }}
    owner {{ {USER_REF} }}
"""

_LIST_ARGS = (
    "$filter: {filter_type}, $first: Int, $after: String, $orderBy: PaginationOrderBy, $includeArchived: Boolean"
)
_LIST_PARAMS = "filter: $filter, first: $first, after: $after, orderBy: $orderBy, includeArchived: $includeArchived"


def _list_query(name: str, field: str, filter_type: str, fields: str) -> str:
    return f"""
query {name}({_LIST_ARGS.format(filter_type=filter_type)}) {{
  {field}({_LIST_PARAMS}) {{
    nodes {{ {fields} }}
    {PAGE_INFO}
  }}
}}
"""


def _get_query(name: str, field: str, fields: str) -> str:
    return f"""
query {name}($id: String!) {{
  {field}(id: $id) {{ {fields} }}
}}
"""


def _mutation(name: str, field: str, input_type: str, result: str, fields: str, *, with_id: bool) -> str:
    if with_id:
        args, params = f"$id: String!, $input: {input_type}!", "id: $id, input: $input"
    else:
        args, params = f"$input: {input_type}!", "input: $input"
    return f"""
mutation {name}({args}) {{
  {field}({params}) {{
    success
    {result} {{ {fields} }}
  }}
}}
"""


def _child_connection(name: str, parent: str, connection: str, fields: str, *, paged: bool = False) -> str:
    if paged:
        return f"""
query {name}($id: String!, $first: Int, $after: String) {{
  {parent}(id: $id) {{
    {connection}(first: $first, after: $after) {{
      nodes {{ {fields} }}
      {PAGE_INFO}
    }}
  }}
}}
"""
    return f"""
query {name}($id: String!, $first: Int) {{
  {parent}(id: $id) {{
    {connection}(first: $first) {{
      nodes {{ {fields} }}
      pageInfo {{ hasNextPage }}
    }}
  }}
}}
"""


# -- Issues ----------------------------------------------------------------

_GET_ISSUE = _get_query("GetIssue", "issue", ISSUE_FIELDS)
_LIST_ISSUES = _list_query("ListIssues", "issues", "IssueFilter", ISSUE_FIELDS)
_SEARCH_ISSUES = f"""
query SearchIssues($query: String!, $first: Int, $after: String) {{
  issueSearch(query: $query, first: $first, after: $after) {{
    nodes {{ {ISSUE_FIELDS} }}
    {PAGE_INFO}
  }}
}}
"""
_ISSUE_COMMENTS = _child_connection("IssueComments", "issue", "comments", COMMENT_FIELDS, paged=True)
_ISSUE_CHILDREN = _child_connection(
    "IssueChildren", "issue", "children", "id identifier title priority url state { id name color type }"
)
_ISSUE_ATTACHMENTS = _child_connection(
    "IssueAttachments", "issue", "attachments", "id title subtitle url sourceType createdAt"
)
_CREATE_ISSUE = _mutation("CreateIssue", "issueCreate", "IssueCreateInput", "issue", ISSUE_FIELDS, with_id=False)
_UPDATE_ISSUE = _mutation("UpdateIssue", "issueUpdate", "IssueUpdateInput", "issue", ISSUE_FIELDS, with_id=True)

# -- Comments --------------------------------------------------------------

_CREATE_COMMENT = _mutation(
    "CreateComment", "commentCreate", "CommentCreateInput", "comment", COMMENT_FIELDS, with_id=False
)
_UPDATE_COMMENT = _mutation(
    "UpdateComment", "commentUpdate", "CommentUpdateInput", "comment", COMMENT_FIELDS, with_id=True
)
_DELETE_COMMENT = """
mutation DeleteComment($id: String!) {
  commentDelete(id: $id) { success }
}
"""

# -- Teams -----------------------------------------------------------------

_GET_TEAM = _get_query("GetTeam", "team", TEAM_FIELDS)
_LIST_TEAMS = _list_query("ListTeams", "teams", "TeamFilter", TEAM_FIELDS)
_TEAM_STATES = _child_connection("TeamStates", "team", "states", "id name color type position description")
_TEAM_MEMBERSHIPS = _child_connection(
    "TeamMemberships", "team", "memberships", f"id owner createdAt user {{ {USER_FIELDS} }}"
)
_TEAM_TEMPLATES = _child_connection("TeamTemplates", "team", "templates", "id name type description")

# -- Projects --------------------------------------------------------------

_GET_PROJECT = _get_query("GetProject", "project", PROJECT_FIELDS)
_LIST_PROJECTS = _list_query("ListProjects", "projects", "ProjectFilter", PROJECT_FIELDS)
_PROJECT_MILESTONES = _child_connection(
    "ProjectMilestones", "project", "projectMilestones", "id name description targetDate sortOrder"
)
_PROJECT_UPDATES = _child_connection(
    "ProjectUpdates", "project", "projectUpdates", f"id body health url createdAt user {{ {USER_REF} }}", paged=True
)

# -- Cycles ----------------------------------------------------------------

_GET_CYCLE = _get_query("GetCycle", "cycle", CYCLE_FIELDS)
_LIST_CYCLES = _list_query("ListCycles", "cycles", "CycleFilter", CYCLE_FIELDS)
_CREATE_CYCLE = _mutation("CreateCycle", "cycleCreate", "CycleCreateInput", "cycle", CYCLE_FIELDS, with_id=False)
_UPDATE_CYCLE = _mutation("UpdateCycle", "cycleUpdate", "CycleUpdateInput", "cycle", CYCLE_FIELDS, with_id=True)

# -- Labels ----------------------------------------------------------------

_GET_LABEL = _get_query("GetLabel", "issueLabel", LABEL_FIELDS)
_LIST_LABELS = _list_query("ListLabels", "issueLabels", "IssueLabelFilter", LABEL_FIELDS)
_LABEL_ISSUE_IDS = _child_connection("LabelIssueIds", "issueLabel", "issues", "id", paged=True)
_CREATE_LABEL = _mutation(
    "CreateLabel", "issueLabelCreate", "IssueLabelCreateInput", "issueLabel", LABEL_FIELDS, with_id=False
)
_UPDATE_LABEL = _mutation(
    "UpdateLabel", "issueLabelUpdate", "IssueLabelUpdateInput", "issueLabel", LABEL_FIELDS, with_id=True
)

# -- Documents -------------------------------------------------------------

_GET_DOCUMENT = _get_query("GetDocument", "document", DOCUMENT_FIELDS)
_LIST_DOCUMENTS = _list_query("ListDocuments", "documents", "DocumentFilter", DOCUMENT_FIELDS)
_CREATE_DOCUMENT = _mutation(
    "CreateDocument", "documentCreate", "DocumentCreateInput", "document", DOCUMENT_FIELDS, with_id=False
)
_UPDATE_DOCUMENT = _mutation(
    "UpdateDocument", "documentUpdate", "DocumentUpdateInput", "document", DOCUMENT_FIELDS, with_id=True
)

# -- Roadmaps & initiatives ------------------------------------------------

_GET_ROADMAP = _get_query("GetRoadmap", "roadmap", ROADMAP_FIELDS)
_LIST_ROADMAPS = f"""
query ListRoadmaps($first: Int, $after: String, $orderBy: PaginationOrderBy, $includeArchived: Boolean) {{
  roadmaps(first: $first, after: $after, orderBy: $orderBy, includeArchived: $includeArchived) {{
    nodes {{ {ROADMAP_FIELDS} }}
    {PAGE_INFO}
  }}
}}
"""
_ROADMAP_PROJECTS = _child_connection("RoadmapProjects", "roadmap", "projects", "id name")
_GET_INITIATIVE = _get_query("GetInitiative", "initiative", INITIATIVE_FIELDS)
_LIST_INITIATIVES = _list_query("ListInitiatives", "initiatives", "InitiativeFilter", INITIATIVE_FIELDS)
_INITIATIVE_PROJECTS = _child_connection("InitiativeProjects", "initiative", "projects", "id name")

# -- Users -----------------------------------------------------------------

_GET_USER = _get_query("GetUser", "user", USER_FIELDS)
_LIST_USERS = f"""
query ListUsers($first: Int, $after: String, $includeArchived: Boolean) {{
  users(first: $first, after: $after, includeArchived: $includeArchived) {{
    nodes {{ {USER_FIELDS} }}
    {PAGE_INFO}
  }}
}}
"""
_VIEWER = f"""
query Viewer {{
  viewer {{
    {USER_FIELDS}
    teams {{ nodes {{ {TEAM_REF} }} }}
  }}
}}
"""


def _nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not connection:
        return []
    return connection.get("nodes") or []


class LinearClient:
    """Typed operations over a :class:`QueryExecutor`.

    By-id reads return ``None`` when the entity does not exist; list reads
    return the raw connection ``{nodes, pageInfo}``.
    """

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def _one(self, query: str, field: str, entity_id: str) -> dict[str, Any] | None:
        try:
            data = await self._executor.execute(query, {"id": entity_id})
        except LinearAPIError as exc:
            if is_missing_entity(exc):
                return None
            raise
        return data.get(field)

    async def _page(self, query: str, field: str, variables: dict[str, Any]) -> dict[str, Any]:
        data = await self._executor.execute(query, {k: v for k, v in variables.items() if v is not None})
        return data.get(field) or {"nodes": [], "pageInfo": {}}

    async def _child(self, query: str, parent: str, connection: str, variables: dict[str, Any]) -> dict[str, Any]:
        data = await self._executor.execute(query, variables)
        return (data.get(parent) or {}).get(connection) or {"nodes": [], "pageInfo": {}}

    async def _all(self, query: str, parent: str, connection: str, entity_id: str) -> list[dict[str, Any]]:
        variables = {"id": entity_id, "first": CHILD_PAGE_SIZE}
        page = await self._child(query, parent, connection, variables)
        if (page.get("pageInfo") or {}).get("hasNextPage"):
            logger.warning("%s of %s %s truncated at %d", connection, parent, entity_id, CHILD_PAGE_SIZE)
        return _nodes(page)

    async def _mutate(self, query: str, field: str, result: str, variables: dict[str, Any]) -> dict[str, Any]:
        data = await self._executor.execute(query, variables)
        payload = data.get(field) or {}
        if not payload.get("success"):
            raise LinearAPIError(f"Linear {field} returned success=false")
        entity = payload.get(result)
        if entity is None:
            raise LinearAPIError(f"Linear {field} succeeded but returned no {result}")
        return entity

    # -- Issues ------------------------------------------------------------

    async def issue(self, issue_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_ISSUE, "issue", issue_id)

    async def issues(
        self,
        *,
        filter: dict[str, Any] | None = None,
        first: int,
        after: str | None = None,
        order_by: str | None = None,
        include_archived: bool | None = None,
    ) -> dict[str, Any]:
        return await self._page(
            _LIST_ISSUES,
            "issues",
            {
                "filter": filter or None,
                "first": first,
                "after": after,
                "orderBy": order_by,
                "includeArchived": include_archived,
            },
        )

    async def search_issues(self, query: str, *, first: int, after: str | None = None) -> dict[str, Any]:
        return await self._page(_SEARCH_ISSUES, "issueSearch", {"query": query, "first": first, "after": after})

    async def issue_comments(self, issue_id: str, *, first: int = 100) -> list[dict[str, Any]]:
        connection = await self._child(_ISSUE_COMMENTS, "issue", "comments", {"id": issue_id, "first": first})
        return _nodes(connection)

    async def issue_children(self, issue_id: str) -> list[dict[str, Any]]:
        return await self._all(_ISSUE_CHILDREN, "issue", "children", issue_id)

    async def issue_attachments(self, issue_id: str) -> list[dict[str, Any]]:
        return await self._all(_ISSUE_ATTACHMENTS, "issue", "attachments", issue_id)

    async def create_issue(self, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_CREATE_ISSUE, "issueCreate", "issue", {"input": input})

    async def update_issue(self, issue_id: str, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_UPDATE_ISSUE, "issueUpdate", "issue", {"id": issue_id, "input": input})

    # -- Comments ----------------------------------------------------------

    async def create_comment(self, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_CREATE_COMMENT, "commentCreate", "comment", {"input": input})

    async def update_comment(self, comment_id: str, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_UPDATE_COMMENT, "commentUpdate", "comment", {"id": comment_id, "input": input})

    async def delete_comment(self, comment_id: str) -> bool:
        data = await self._executor.execute(_DELETE_COMMENT, {"id": comment_id})
        return bool((data.get("commentDelete") or {}).get("success"))

    # -- Teams -------------------------------------------------------------

    async def team(self, team_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_TEAM, "team", team_id)

    async def teams(self, *, first: int, after: str | None = None) -> dict[str, Any]:
        return await self._page(_LIST_TEAMS, "teams", {"first": first, "after": after})

    async def team_states(self, team_id: str) -> list[dict[str, Any]]:
        return await self._all(_TEAM_STATES, "team", "states", team_id)

    async def team_memberships(self, team_id: str) -> list[dict[str, Any]]:
        return await self._all(_TEAM_MEMBERSHIPS, "team", "memberships", team_id)

    async def team_templates(self, team_id: str) -> list[dict[str, Any]]:
        return await self._all(_TEAM_TEMPLATES, "team", "templates", team_id)

    # -- Projects ----------------------------------------------------------

    async def project(self, project_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_PROJECT, "project", project_id)

    async def projects(
        self,
        *,
        filter: dict[str, Any] | None = None,
        first: int,
        after: str | None = None,
        order_by: str | None = None,
        include_archived: bool | None = None,
    ) -> dict[str, Any]:
        return await self._page(
            _LIST_PROJECTS,
            "projects",
            {
                "filter": filter or None,
                "first": first,
                "after": after,
                "orderBy": order_by,
                "includeArchived": include_archived,
            },
        )

    async def project_milestones(self, project_id: str) -> list[dict[str, Any]]:
        return await self._all(_PROJECT_MILESTONES, "project", "projectMilestones", project_id)

    async def project_updates(self, project_id: str, *, first: int = 10) -> list[dict[str, Any]]:
        variables = {"id": project_id, "first": first}
        return _nodes(await self._child(_PROJECT_UPDATES, "project", "projectUpdates", variables))

    # -- Cycles ------------------------------------------------------------

    async def cycle(self, cycle_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_CYCLE, "cycle", cycle_id)

    async def cycles(
        self, *, filter: dict[str, Any] | None = None, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._page(_LIST_CYCLES, "cycles", {"filter": filter or None, "first": first, "after": after})

    async def create_cycle(self, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_CREATE_CYCLE, "cycleCreate", "cycle", {"input": input})

    async def update_cycle(self, cycle_id: str, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_UPDATE_CYCLE, "cycleUpdate", "cycle", {"id": cycle_id, "input": input})

    # -- Labels ------------------------------------------------------------

    async def issue_label(self, label_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_LABEL, "issueLabel", label_id)

    async def issue_labels(
        self, *, filter: dict[str, Any] | None = None, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._page(_LIST_LABELS, "issueLabels", {"filter": filter or None, "first": first, "after": after})

    async def label_issue_count(self, label_id: str) -> tuple[int, bool]:
        """Count issues carrying the label by walking id-only pages.

        Returns the count and whether the walk stopped at
        ``LABEL_ISSUE_COUNT_MAX_PAGES`` with issues left uncounted.
        """
        count = 0
        after = None
        for _ in range(LABEL_ISSUE_COUNT_MAX_PAGES):
            variables = {"id": label_id, "first": CHILD_PAGE_SIZE, "after": after}
            connection = await self._child(_LABEL_ISSUE_IDS, "issueLabel", "issues", variables)
            count += len(_nodes(connection))
            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage") or not page_info.get("endCursor"):
                return count, False
            after = page_info["endCursor"]
        return count, True

    async def create_label(self, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_CREATE_LABEL, "issueLabelCreate", "issueLabel", {"input": input})

    async def update_label(self, label_id: str, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_UPDATE_LABEL, "issueLabelUpdate", "issueLabel", {"id": label_id, "input": input})

    # -- Documents ---------------------------------------------------------

    async def document(self, document_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_DOCUMENT, "document", document_id)

    async def documents(
        self, *, filter: dict[str, Any] | None = None, first: int, after: str | None = None
    ) -> dict[str, Any]:
        variables = {"filter": filter or None, "first": first, "after": after}
        return await self._page(_LIST_DOCUMENTS, "documents", variables)

    async def create_document(self, input: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate(_CREATE_DOCUMENT, "documentCreate", "document", {"input": input})

    async def update_document(self, document_id: str, input: dict[str, Any]) -> dict[str, Any]:
        variables = {"id": document_id, "input": input}
        return await self._mutate(_UPDATE_DOCUMENT, "documentUpdate", "document", variables)

    # -- Roadmaps & initiatives --------------------------------------------

    async def roadmap(self, roadmap_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_ROADMAP, "roadmap", roadmap_id)

    async def roadmaps(
        self,
        *,
        first: int,
        after: str | None = None,
        order_by: str | None = None,
        include_archived: bool | None = None,
    ) -> dict[str, Any]:
        variables = {"first": first, "after": after, "orderBy": order_by, "includeArchived": include_archived}
        return await self._page(_LIST_ROADMAPS, "roadmaps", variables)

    async def roadmap_projects(self, roadmap_id: str) -> list[dict[str, Any]]:
        return await self._all(_ROADMAP_PROJECTS, "roadmap", "projects", roadmap_id)

    async def initiative(self, initiative_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_INITIATIVE, "initiative", initiative_id)

    async def initiatives(
        self,
        *,
        first: int,
        after: str | None = None,
        order_by: str | None = None,
        include_archived: bool | None = None,
    ) -> dict[str, Any]:
        variables = {"first": first, "after": after, "orderBy": order_by, "includeArchived": include_archived}
        return await self._page(_LIST_INITIATIVES, "initiatives", variables)

    async def initiative_projects(self, initiative_id: str) -> list[dict[str, Any]]:
        return await self._all(_INITIATIVE_PROJECTS, "initiative", "projects", initiative_id)

    # -- Users -------------------------------------------------------------

    async def user(self, user_id: str) -> dict[str, Any] | None:
        return await self._one(_GET_USER, "user", user_id)

    async def users(
        self, *, first: int, after: str | None = None, include_archived: bool | None = None
    ) -> dict[str, Any]:
        variables = {"first": first, "after": after, "includeArchived": include_archived}
        return await self._page(_LIST_USERS, "users", variables)

    async def viewer(self) -> dict[str, Any]:
        data = await self._executor.execute(_VIEWER)
        viewer = data.get("viewer")
        if viewer is None:
            raise LinearAPIError("Linear API error: viewer query returned no user")
        return viewer
