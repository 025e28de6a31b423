"""Tool argument models and the validator that turns untyped input into them.

Each model is both the runtime validator and, through ``model_json_schema()``,
the ``inputSchema`` advertised in discovery. Arguments are camelCase on the
wire and snake_case in Python.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Annotated, Any, Literal, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from linear_mcp.errors import ToolValidationError

DEFAULT_PAGE_SIZE = 50


def _bounded(low: int, high: int) -> AfterValidator:
    def check(value: int) -> int:
        if not low <= value <= high:
            raise ValueError(f"must be between {low} and {high}")
        return value

    return AfterValidator(check)


def _parse_iso(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` or a full ISO 8601 timestamp; naive values are UTC."""
    if not isinstance(value, str):
        return value
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"must be an ISO date (YYYY-MM-DD) or timestamp, got {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


Priority = Annotated[
    int,
    _bounded(0, 4),
    Field(
        description="0 = No priority, 1 = Urgent, 2 = High, 3 = Medium, 4 = Low",
        json_schema_extra={"minimum": 0, "maximum": 4},
    ),
]
PageSize = Annotated[int, Field(gt=0, description=f"Number of results to return (default {DEFAULT_PAGE_SIZE})")]
Cursor = Annotated[str, Field(description="Return results after this cursor (pageInfo.endCursor)")]
IsoDateTime = Annotated[datetime, BeforeValidator(_parse_iso)]
OrderBy = Literal["createdAt", "updatedAt"]


class ToolArgs(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", alias_generator=to_camel)


A = TypeVar("A", bound=ToolArgs)


# -- Issues -------------------------------------------------------------------


class ListIssuesArgs(ToolArgs):
    team_id: str | None = Field(None, description="Filter by team ID")
    assignee_id: str | None = Field(None, description="Filter by assignee ID")
    status: str | None = Field(None, description="Filter by workflow state name")
    project_id: str | None = Field(None, description="Filter by project ID")
    creator_id: str | None = Field(None, description="Filter by creator ID")
    priority: Priority | None = None
    due_date: str | None = Field(None, description="Due date equals (YYYY-MM-DD)")
    due_date_gte: str | None = Field(None, description="Due on or after (YYYY-MM-DD)")
    due_date_lte: str | None = Field(None, description="Due on or before (YYYY-MM-DD)")
    created_at_gte: str | None = None
    created_at_lte: str | None = None
    updated_at_gte: str | None = None
    updated_at_lte: str | None = None
    completed_at_gte: str | None = None
    completed_at_lte: str | None = None
    canceled_at_gte: str | None = None
    canceled_at_lte: str | None = None
    started_at_gte: str | None = None
    started_at_lte: str | None = None
    archived_at_gte: str | None = None
    archived_at_lte: str | None = None
    title: str | None = Field(None, description="Title equals")
    title_contains: str | None = Field(None, description="Title contains (case-insensitive)")
    description: str | None = Field(None, description="Description equals")
    description_contains: str | None = Field(None, description="Description contains (case-insensitive)")
    number: int | None = Field(None, description="Issue number within its team")
    label_ids: list[str] | None = Field(None, description="Issues carrying any of these labels")
    cycle_id: str | None = None
    parent_id: str | None = None
    estimate: float | None = None
    estimate_gte: float | None = None
    estimate_lte: float | None = None
    subscriber_ids: list[str] | None = Field(None, description="Issues subscribed to by any of these users")
    include_archived: bool | None = None
    order_by: OrderBy | None = None
    first: PageSize | None = None
    after: Cursor | None = None


class GetIssueArgs(ToolArgs):
    issue_id: str = Field(description="Issue ID or identifier (e.g. ENG-123)")


class SearchIssuesArgs(ToolArgs):
    query: str = Field(description="Search text")
    first: PageSize | None = None
    after: Cursor | None = None


class CreateIssueArgs(ToolArgs):
    title: str
    team_id: str
    description: str | None = Field(None, description="Markdown description")
    assignee_id: str | None = None
    priority: Priority | None = None
    labels: list[str] | None = Field(None, description="Label IDs")
    project_id: str | None = None
    cycle_id: str | None = None
    parent_id: str | None = None
    due_date: str | None = Field(None, description="YYYY-MM-DD")
    estimate: int | None = None


class UpdateIssueArgs(ToolArgs):
    issue_id: str
    title: str | None = None
    description: str | None = None
    status: str | None = Field(None, description="Workflow state name or ID of the issue's team")
    assignee_id: str | None = None
    priority: Priority | None = None
    labels: list[str] | None = Field(None, description="Label IDs; replaces the current set")
    project_id: str | None = None
    due_date: str | None = None
    estimate: int | None = None


# -- Comments -----------------------------------------------------------------


class GetCommentArgs(ToolArgs):
    comment_id: str


class CreateCommentArgs(ToolArgs):
    issue_id: str
    body: str = Field(description="Markdown body")


class UpdateCommentArgs(ToolArgs):
    comment_id: str
    body: str


class DeleteCommentArgs(ToolArgs):
    comment_id: str


# -- Teams & users ------------------------------------------------------------


class ListTeamsArgs(ToolArgs):
    first: PageSize | None = None
    after: Cursor | None = None


class GetTeamArgs(ToolArgs):
    team_id: str


class ListUsersArgs(ToolArgs):
    first: PageSize | None = None
    after: Cursor | None = None
    include_archived: bool | None = None


class GetUserArgs(ToolArgs):
    user_id: str


class MeArgs(ToolArgs):
    pass


# -- Projects, roadmaps, initiatives ------------------------------------------


class ListProjectsArgs(ToolArgs):
    team_id: str | None = Field(None, description="Projects accessible to this team")
    name: str | None = None
    state: str | None = Field(None, description="backlog, planned, started, paused, completed or canceled")
    health: Literal["onTrack", "atRisk", "offTrack"] | None = None
    lead_id: str | None = None
    creator_id: str | None = None
    created_after: str | None = None
    created_before: str | None = None
    updated_after: str | None = None
    updated_before: str | None = None
    completed_after: str | None = None
    completed_before: str | None = None
    canceled_after: str | None = None
    canceled_before: str | None = None
    start_date: str | None = Field(None, description="Start date equals (YYYY-MM-DD)")
    target_date: str | None = Field(None, description="Target date equals (YYYY-MM-DD)")
    include_archived: bool | None = None
    order_by: OrderBy | None = None
    first: PageSize | None = None
    after: Cursor | None = None


class GetProjectArgs(ToolArgs):
    project_id: str


class ListRoadmapsArgs(ToolArgs):
    first: PageSize | None = None
    after: Cursor | None = None
    include_archived: bool | None = None
    order_by: OrderBy | None = None
    include_projects: bool | None = Field(None, description="Embed the IDs of each roadmap's projects")


class GetRoadmapArgs(ToolArgs):
    roadmap_id: str
    include_projects: bool | None = None


class ListInitiativesArgs(ListRoadmapsArgs):
    pass


class GetInitiativeArgs(ToolArgs):
    initiative_id: str
    include_projects: bool | None = None


# -- Labels -------------------------------------------------------------------


class ListLabelsArgs(ToolArgs):
    team_id: str | None = None
    first: PageSize | None = None
    after: Cursor | None = None


class GetLabelArgs(ToolArgs):
    label_id: str


class CreateLabelArgs(ToolArgs):
    team_id: str
    name: str
    color: str | None = Field(None, description="Hex color, e.g. #FF0000")
    description: str | None = None
    parent_id: str | None = Field(None, description="Parent label group ID")


class UpdateLabelArgs(ToolArgs):
    label_id: str
    name: str | None = None
    color: str | None = None
    description: str | None = None


# -- Cycles -------------------------------------------------------------------


class ListCyclesArgs(ToolArgs):
    team_id: str | None = None
    first: PageSize | None = None
    after: Cursor | None = None


class GetCycleArgs(ToolArgs):
    cycle_id: str
    include_issues: bool | None = Field(None, description="Embed the cycle's issues (bounded by first)")
    first: PageSize | None = None


class CreateCycleArgs(ToolArgs):
    team_id: str
    name: str
    description: str | None = None
    start_date: IsoDateTime = Field(description="YYYY-MM-DD or ISO 8601 timestamp")
    end_date: IsoDateTime = Field(description="YYYY-MM-DD or ISO 8601 timestamp")


class UpdateCycleArgs(ToolArgs):
    cycle_id: str
    name: str | None = None
    description: str | None = None
    start_date: IsoDateTime | None = None
    end_date: IsoDateTime | None = None


# -- Documents ----------------------------------------------------------------


class ListDocumentsArgs(ToolArgs):
    team_id: str | None = Field(None, description="Documents of the team's projects")
    first: PageSize | None = None
    after: Cursor | None = Field(None, description="Cursor for the unscoped listing; not combinable with teamId")


class GetDocumentArgs(ToolArgs):
    document_id: str


class CreateDocumentArgs(ToolArgs):
    title: str
    content: str = Field(description="Markdown content")
    team_id: str
    project_id: str | None = None


class UpdateDocumentArgs(ToolArgs):
    document_id: str
    title: str | None = None
    content: str | None = None


# -- Validation ---------------------------------------------------------------


def _violation(error: Mapping[str, Any]) -> str:
    path = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
    match error.get("type"):
        case "value_error":
            reason = str(error["ctx"]["error"])
        case "missing":
            reason = "required"
        case _:
            reason = error.get("msg", "invalid")
    return f"{path}: {reason}"


def validate_args(model: type[A], raw: Any) -> A:
    """Validate *raw* against *model*, reporting every violation at once.

    ``None`` is treated as an empty argument object; anything else that is
    not a mapping fails on the ``arguments`` path.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ToolValidationError([f"arguments: expected an object, got {type(raw).__name__}"])
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        raise ToolValidationError([_violation(err) for err in exc.errors()]) from None


def provided(args: ToolArgs) -> dict[str, Any]:
    """Fields present in the caller's input, keyed by their Python name."""
    return {name: getattr(args, name) for name in args.model_fields_set}


def page_size(args: ToolArgs) -> int:
    return getattr(args, "first", None) or DEFAULT_PAGE_SIZE


def input_schema(model: type[ToolArgs]) -> dict[str, Any]:
    schema = model.model_json_schema()
    schema.pop("title", None)
    schema.setdefault("properties", {})
    return schema
