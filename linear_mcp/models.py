"""Flat projections returned by tools, shared by the formatters and the dispatcher.

Every reference is either a projected object or ``None``; serialising with
``model_dump(by_alias=True)`` keeps ``None`` as an explicit ``null``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Projection(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# -- References ---------------------------------------------------------------


class UserRef(Projection):
    id: str
    name: str | None = None
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class TeamRef(Projection):
    id: str
    name: str | None = None
    key: str | None = None


class ProjectRef(Projection):
    id: str
    name: str | None = None


class CycleRef(Projection):
    id: str
    name: str | None = None
    number: int | None = None


class IssueRef(Projection):
    id: str
    identifier: str | None = None
    title: str | None = None


class StatusRef(Projection):
    id: str
    name: str | None = None
    color: str | None = None
    type: str | None = None


class LabelRef(Projection):
    id: str
    name: str | None = None
    color: str | None = None


class PageInfo(Projection):
    has_next_page: bool = False
    end_cursor: str | None = None
    has_previous_page: bool = False
    start_cursor: str | None = None


# -- Issues & comments --------------------------------------------------------


class EmbeddedImage(Projection):
    url: str
    analysis: str


class Attachment(Projection):
    id: str
    title: str | None = None
    subtitle: str | None = None
    url: str | None = None
    source_type: str | None = None
    created_at: str | None = None


class ChildIssue(Projection):
    id: str
    identifier: str | None = None
    title: str | None = None
    priority: int | None = None
    url: str | None = None
    status: StatusRef | None = None


class Comment(Projection):
    id: str
    body: str | None = None
    url: str | None = None
    user: UserRef | None = None
    issue: IssueRef | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Issue(Projection):
    id: str
    identifier: str | None = None
    title: str | None = None
    description: str | None = None
    priority: int | None = None
    priority_label: str | None = None
    status: StatusRef | None = None
    assignee: UserRef | None = None
    creator: UserRef | None = None
    team: TeamRef | None = None
    project: ProjectRef | None = None
    cycle: CycleRef | None = None
    parent: IssueRef | None = None
    labels: list[LabelRef] = []
    estimate: float | None = None
    url: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    canceled_at: str | None = None
    archived_at: str | None = None
    embedded_images: list[EmbeddedImage] = []


class IssueDetail(Issue):
    comments: list[Comment] = []
    children: list[ChildIssue] = []
    attachments: list[Attachment] = []


# -- Users --------------------------------------------------------------------


class User(Projection):
    id: str
    name: str | None = None
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    active: bool | None = None
    admin: bool | None = None
    created_at: str | None = None
    url: str | None = None


class Viewer(User):
    teams: list[TeamRef] = []


# -- Teams --------------------------------------------------------------------


class WorkflowState(Projection):
    id: str
    name: str | None = None
    color: str | None = None
    type: str | None = None
    position: float | None = None
    description: str | None = None


class TeamMember(Projection):
    id: str
    owner: bool = False
    user: User | None = None
    created_at: str | None = None


class Template(Projection):
    id: str
    name: str | None = None
    type: str | None = None
    description: str | None = None


class Organization(Projection):
    id: str
    name: str | None = None
    url_key: str | None = None


class IntegrationsSettings(Projection):
    id: str


class Team(Projection):
    id: str
    name: str | None = None
    key: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    timezone: str | None = None
    private: bool | None = None
    cycles_enabled: bool | None = None
    created_at: str | None = None
    updated_at: str | None = None
    organization: Organization | None = None
    integrations_settings: IntegrationsSettings | None = None


class TeamDetail(Team):
    states: list[WorkflowState] = []
    members: list[TeamMember] = []
    templates: list[Template] = []


# -- Projects -----------------------------------------------------------------


class Milestone(Projection):
    id: str
    name: str | None = None
    description: str | None = None
    target_date: str | None = None
    sort_order: float | None = None


class ProjectUpdate(Projection):
    id: str
    body: str | None = None
    health: str | None = None
    url: str | None = None
    user: UserRef | None = None
    created_at: str | None = None


class Project(Projection):
    id: str
    name: str | None = None
    description: str | None = None
    slug_id: str | None = None
    icon: str | None = None
    color: str | None = None
    state: str | None = None
    health: str | None = None
    progress: float | None = None
    priority: int | None = None
    start_date: str | None = None
    target_date: str | None = None
    completed_at: str | None = None
    canceled_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    archived_at: str | None = None
    url: str | None = None
    creator: UserRef | None = None
    lead: UserRef | None = None
    teams: list[TeamRef] = []


class ProjectDetail(Project):
    members: list[UserRef] = []
    # "members" when the membership query answered, "creator_lead" on fallback
    members_source: Literal["members", "creator_lead"] = "members"
    milestones: list[Milestone] = []
    updates: list[ProjectUpdate] = []


# -- Cycles -------------------------------------------------------------------


class CycleIssue(Projection):
    id: str
    identifier: str | None = None
    title: str | None = None
    priority: int | None = None
    estimate: float | None = None
    url: str | None = None
    completed_at: str | None = None
    status: StatusRef | None = None
    assignee: UserRef | None = None
    labels: list[LabelRef] = []


class Cycle(Projection):
    id: str
    name: str | None = None
    number: int | None = None
    description: str | None = None
    team: TeamRef | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    completed_at: str | None = None
    progress: float | None = None
    created_at: str | None = None
    updated_at: str | None = None
    issue_count_history: list[float] = []
    completed_issue_count_history: list[float] = []
    scope_history: list[float] = []
    completed_scope_history: list[float] = []


class CycleWithIssues(Cycle):
    issues: list[CycleIssue] = []
    issues_page_info: PageInfo = PageInfo()


# -- Labels -------------------------------------------------------------------


class Label(Projection):
    id: str
    name: str | None = None
    color: str | None = None
    description: str | None = None
    is_group: bool | None = None
    team: TeamRef | None = None
    parent: LabelRef | None = None
    created_at: str | None = None
    updated_at: str | None = None


class LabelDetail(Label):
    issue_count: int = 0
    # True when issue_count is a lower bound.
    issue_count_truncated: bool = False


# -- Documents ----------------------------------------------------------------


class Document(Projection):
    id: str
    title: str | None = None
    content: str | None = None
    icon: str | None = None
    color: str | None = None
    slug_id: str | None = None
    url: str | None = None
    creator: UserRef | None = None
    project: ProjectRef | None = None
    # Documents carry no team of their own; derived from the project's first team
    team: TeamRef | None = None
    created_at: str | None = None
    updated_at: str | None = None


# -- Roadmaps & initiatives ---------------------------------------------------


class Roadmap(Projection):
    id: str
    name: str | None = None
    description: str | None = None
    color: str | None = None
    slug_id: str | None = None
    url: str | None = None
    creator: UserRef | None = None
    created_at: str | None = None
    updated_at: str | None = None
    archived_at: str | None = None


class RoadmapWithProjects(Roadmap):
    project_ids: list[str] = []


class Initiative(Projection):
    id: str
    name: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    status: str | None = None
    target_date: str | None = None
    url: str | None = None
    creator: UserRef | None = None
    owner: UserRef | None = None
    created_at: str | None = None
    updated_at: str | None = None
    archived_at: str | None = None


class InitiativeWithProjects(Initiative):
    project_ids: list[str] = []


class DeleteResult(Projection):
    success: bool
