"""Pure mapping from raw Linear nodes (plus resolved relations) to projections.

Nothing here performs I/O: by-id handlers resolve connections first and pass
them in through the ``*Relations`` containers. Projection aliases match
Linear's camelCase field names, so most nodes validate directly; the helpers
below only handle renames (``state`` -> ``status``), connections
(``{nodes: [...]}``) and derived fields.
"""

import re
from dataclasses import dataclass, field
from typing import Any, TypeVar

from linear_mcp.models import (
    Attachment,
    ChildIssue,
    Comment,
    Cycle,
    CycleIssue,
    CycleRef,
    CycleWithIssues,
    Document,
    EmbeddedImage,
    Initiative,
    InitiativeWithProjects,
    Issue,
    IssueDetail,
    IssueRef,
    Label,
    LabelDetail,
    LabelRef,
    Milestone,
    PageInfo,
    Project,
    ProjectDetail,
    ProjectRef,
    ProjectUpdate,
    Projection,
    Roadmap,
    RoadmapWithProjects,
    StatusRef,
    Team,
    TeamDetail,
    TeamMember,
    TeamRef,
    Template,
    User,
    UserRef,
    Viewer,
    WorkflowState,
)

Node = dict[str, Any]

P = TypeVar("P", bound=Projection)

PRIORITY_LABELS = {0: "No priority", 1: "Urgent", 2: "High", 3: "Medium", 4: "Low"}

# No image analysis is performed; every extracted image carries this text.
IMAGE_ANALYSIS_PLACEHOLDER = "Image analysis not available"

# ![alt](url) and ![alt](<url> "title"); the url may hold one level of parentheses
_MARKDOWN_IMAGE = re.compile(r"!\[[^\]]*\]\(\s*<?((?:[^\s()<>]|\([^\s()<>]*\))+)>?(?:\s+\"[^\"]*\")?\s*\)")


@dataclass(frozen=True)
class IssueRelations:
    comments: list[Node] = field(default_factory=list)
    children: list[Node] = field(default_factory=list)
    attachments: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class TeamRelations:
    states: list[Node] = field(default_factory=list)
    memberships: list[Node] = field(default_factory=list)
    templates: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectRelations:
    # None when the membership query failed
    members: list[Node] | None = None
    milestones: list[Node] = field(default_factory=list)
    updates: list[Node] = field(default_factory=list)


def nodes(connection: Node | None) -> list[Node]:
    if not connection:
        return []
    return connection.get("nodes") or []


def _ref(model: type[P], node: Node | None) -> P | None:
    if not node:
        return None
    return model.model_validate(node)


def _many(model: type[P], items: list[Node]) -> list[P]:
    return [model.model_validate(item) for item in items if item]


def _labels(node: Node) -> list[LabelRef]:
    seen: dict[str, LabelRef] = {}
    for label in nodes(node.get("labels")):
        if label and label.get("id") not in seen:
            seen[label["id"]] = LabelRef.model_validate(label)
    return list(seen.values())


def _priority(value: Any) -> int | None:
    return int(value) if value is not None else None


def extract_images(markdown: str | None) -> list[EmbeddedImage]:
    """Return one entry per markdown image link in *markdown*, in order of appearance."""
    if not markdown:
        return []
    return [EmbeddedImage(url=url, analysis=IMAGE_ANALYSIS_PLACEHOLDER) for url in _MARKDOWN_IMAGE.findall(markdown)]


def format_page_info(connection: Node | None) -> PageInfo:
    return PageInfo.model_validate((connection or {}).get("pageInfo") or {})


# -- Issues -------------------------------------------------------------------


def _issue_fields(node: Node) -> dict[str, Any]:
    priority = _priority(node.get("priority"))
    description = node.get("description")
    return {
        "id": node["id"],
        "identifier": node.get("identifier"),
        "title": node.get("title"),
        "description": description,
        "priority": priority,
        "priority_label": node.get("priorityLabel") or PRIORITY_LABELS.get(priority),
        "status": _ref(StatusRef, node.get("state")),
        "assignee": _ref(UserRef, node.get("assignee")),
        "creator": _ref(UserRef, node.get("creator")),
        "team": _ref(TeamRef, node.get("team")),
        "project": _ref(ProjectRef, node.get("project")),
        "cycle": _ref(CycleRef, node.get("cycle")),
        "parent": _ref(IssueRef, node.get("parent")),
        "labels": _labels(node),
        "estimate": node.get("estimate"),
        "url": node.get("url"),
        "due_date": node.get("dueDate"),
        "created_at": node.get("createdAt"),
        "updated_at": node.get("updatedAt"),
        "started_at": node.get("startedAt"),
        "completed_at": node.get("completedAt"),
        "canceled_at": node.get("canceledAt"),
        "archived_at": node.get("archivedAt"),
        "embedded_images": extract_images(description),
    }


def format_issue(node: Node) -> Issue:
    return Issue(**_issue_fields(node))


def format_issue_detail(node: Node, relations: IssueRelations) -> IssueDetail:
    return IssueDetail(
        **_issue_fields(node),
        comments=[format_comment(c) for c in relations.comments if c],
        children=[format_child_issue(c) for c in relations.children if c],
        attachments=_many(Attachment, relations.attachments),
    )


def format_child_issue(node: Node) -> ChildIssue:
    return ChildIssue(
        id=node["id"],
        identifier=node.get("identifier"),
        title=node.get("title"),
        priority=_priority(node.get("priority")),
        url=node.get("url"),
        status=_ref(StatusRef, node.get("state")),
    )


def format_comment(node: Node, issue: Node | None = None) -> Comment:
    """Project a comment; *issue* overrides the node's own ``issue`` reference."""
    return Comment(
        id=node["id"],
        body=node.get("body"),
        url=node.get("url"),
        user=_ref(UserRef, node.get("user")),
        issue=_ref(IssueRef, issue or node.get("issue")),
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
    )


# -- Users --------------------------------------------------------------------


def format_user(node: Node) -> User:
    return User.model_validate(node)


def format_viewer(node: Node) -> Viewer:
    return Viewer.model_validate({**node, "teams": nodes(node.get("teams"))})


# -- Teams --------------------------------------------------------------------


def format_team(node: Node) -> Team:
    return Team.model_validate(node)


def format_team_detail(node: Node, relations: TeamRelations) -> TeamDetail:
    states = sorted(_many(WorkflowState, relations.states), key=lambda s: (s.position is None, s.position or 0))
    members = [
        TeamMember(
            id=m["id"],
            owner=bool(m.get("owner")),
            user=_ref(User, m.get("user")),
            created_at=m.get("createdAt"),
        )
        for m in relations.memberships
        if m
    ]
    return TeamDetail.model_validate(
        {
            **format_team(node).model_dump(),
            "states": states,
            "members": members,
            "templates": _many(Template, relations.templates),
        }
    )


# -- Projects -----------------------------------------------------------------


def _project_fields(node: Node) -> dict[str, Any]:
    return {**node, "priority": _priority(node.get("priority")), "teams": nodes(node.get("teams"))}


def format_project(node: Node) -> Project:
    return Project.model_validate(_project_fields(node))


def format_project_detail(node: Node, relations: ProjectRelations) -> ProjectDetail:
    if relations.members is not None:
        members = _many(UserRef, relations.members)
        source = "members"
    else:
        members = []
        for person in (node.get("creator"), node.get("lead")):
            if person and all(m.id != person["id"] for m in members):
                members.append(UserRef.model_validate(person))
        source = "creator_lead"
    return ProjectDetail.model_validate(
        {
            **_project_fields(node),
            "members": members,
            "membersSource": source,
            "milestones": _many(Milestone, relations.milestones),
            "updates": _many(ProjectUpdate, relations.updates),
        }
    )


# -- Cycles -------------------------------------------------------------------


def format_cycle(node: Node) -> Cycle:
    return Cycle.model_validate(node)


def format_cycle_issue(node: Node) -> CycleIssue:
    return CycleIssue(
        id=node["id"],
        identifier=node.get("identifier"),
        title=node.get("title"),
        priority=_priority(node.get("priority")),
        estimate=node.get("estimate"),
        url=node.get("url"),
        completed_at=node.get("completedAt"),
        status=_ref(StatusRef, node.get("state")),
        assignee=_ref(UserRef, node.get("assignee")),
        labels=_labels(node),
    )


def format_cycle_with_issues(node: Node, issues: Node | None) -> CycleWithIssues:
    return CycleWithIssues.model_validate(
        {
            **node,
            "issues": [format_cycle_issue(i) for i in nodes(issues) if i],
            "issuesPageInfo": format_page_info(issues),
        }
    )


# -- Labels -------------------------------------------------------------------


def format_label(node: Node) -> Label:
    return Label.model_validate(node)


def format_label_detail(node: Node, issue_count: int, *, truncated: bool = False) -> LabelDetail:
    return LabelDetail.model_validate({**node, "issueCount": issue_count, "issueCountTruncated": truncated})


# -- Documents ----------------------------------------------------------------


def format_document(node: Node) -> Document:
    project = node.get("project")
    teams = nodes(project.get("teams")) if project else []
    return Document(
        id=node["id"],
        title=node.get("title"),
        content=node.get("content"),
        icon=node.get("icon"),
        color=node.get("color"),
        slug_id=node.get("slugId"),
        url=node.get("url"),
        creator=_ref(UserRef, node.get("creator")),
        project=_ref(ProjectRef, project),
        team=_ref(TeamRef, teams[0] if teams else None),
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
    )


# -- Roadmaps & initiatives ---------------------------------------------------


def format_roadmap(node: Node, projects: list[Node] | None = None) -> Roadmap:
    if projects is None:
        return Roadmap.model_validate(node)
    return RoadmapWithProjects.model_validate({**node, "projectIds": [p["id"] for p in projects if p]})


def format_initiative(node: Node, projects: list[Node] | None = None) -> Initiative:
    if projects is None:
        return Initiative.model_validate(node)
    return InitiativeWithProjects.model_validate({**node, "projectIds": [p["id"] for p in projects if p]})
