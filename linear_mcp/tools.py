"""Registry of every tool: name, description, argument model and error phrase."""

from typing import NamedTuple

from mcp import types

from linear_mcp import schemas
from linear_mcp.schemas import ToolArgs


class ToolSpec(NamedTuple):
    name: str
    description: str
    args: type[ToolArgs]
    # Used in "Failed to <action>: ..." messages
    action: str
    mutates: bool = False

    def descriptor(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=schemas.input_schema(self.args))


READ_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec("list_issues", "List issues with optional filters", schemas.ListIssuesArgs, "list issues"),
    ToolSpec(
        "get_issue",
        "Get detailed information about a specific issue, including comments, sub-issues and attachments",
        schemas.GetIssueArgs,
        "get issue",
    ),
    ToolSpec("search_issues", "Search for issues using query text", schemas.SearchIssuesArgs, "search issues"),
    ToolSpec("list_teams", "List all teams in the workspace", schemas.ListTeamsArgs, "list teams"),
    ToolSpec(
        "get_team",
        "Get team details, including workflow states, members and templates",
        schemas.GetTeamArgs,
        "get team",
    ),
    ToolSpec("list_projects", "List projects with optional filters", schemas.ListProjectsArgs, "list projects"),
    ToolSpec(
        "get_project",
        "Get project details, including members, milestones and recent updates",
        schemas.GetProjectArgs,
        "get project",
    ),
    ToolSpec("list_roadmaps", "List all roadmaps", schemas.ListRoadmapsArgs, "list roadmaps"),
    ToolSpec("get_roadmap", "Get roadmap details", schemas.GetRoadmapArgs, "get roadmap"),
    ToolSpec("list_initiatives", "List all initiatives", schemas.ListInitiativesArgs, "list initiatives"),
    ToolSpec(
        "get_initiative",
        "Get detailed information about a specific initiative",
        schemas.GetInitiativeArgs,
        "get initiative",
    ),
    ToolSpec("get_comment", "Get a specific comment", schemas.GetCommentArgs, "get comment"),
    ToolSpec("list_labels", "List issue labels, optionally for one team", schemas.ListLabelsArgs, "list labels"),
    ToolSpec("get_label", "Get label details and how many issues carry it", schemas.GetLabelArgs, "get label"),
    ToolSpec("list_cycles", "List cycles, optionally for one team", schemas.ListCyclesArgs, "list cycles"),
    ToolSpec("get_cycle", "Get cycle details, optionally with its issues", schemas.GetCycleArgs, "get cycle"),
    ToolSpec(
        "list_documents",
        "List documents, optionally those of one team's projects",
        schemas.ListDocumentsArgs,
        "list documents",
    ),
    ToolSpec("get_document", "Get document details", schemas.GetDocumentArgs, "get document"),
    ToolSpec("list_users", "List all users in the workspace", schemas.ListUsersArgs, "list users"),
    ToolSpec("get_user", "Get detailed information about a specific user", schemas.GetUserArgs, "get user"),
    ToolSpec("me", "Get information about the authenticated user", schemas.MeArgs, "get authenticated user"),
)

WRITE_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec("create_issue", "Create a new issue in Linear", schemas.CreateIssueArgs, "create issue", True),
    ToolSpec("update_issue", "Update an existing issue", schemas.UpdateIssueArgs, "update issue", True),
    ToolSpec("create_comment", "Create a new comment on an issue", schemas.CreateCommentArgs, "create comment", True),
    ToolSpec("update_comment", "Update an existing comment", schemas.UpdateCommentArgs, "update comment", True),
    ToolSpec("delete_comment", "Delete a comment", schemas.DeleteCommentArgs, "delete comment", True),
    ToolSpec("create_label", "Create a new label in a team", schemas.CreateLabelArgs, "create label", True),
    ToolSpec("update_label", "Update an existing label", schemas.UpdateLabelArgs, "update label", True),
    ToolSpec("create_cycle", "Create a new cycle for a team", schemas.CreateCycleArgs, "create cycle", True),
    ToolSpec("update_cycle", "Update an existing cycle", schemas.UpdateCycleArgs, "update cycle", True),
    ToolSpec("create_document", "Create a new document", schemas.CreateDocumentArgs, "create document", True),
    ToolSpec("update_document", "Update an existing document", schemas.UpdateDocumentArgs, "update document", True),
)

TOOLS: dict[str, ToolSpec] = {spec.name: spec for spec in READ_TOOLS + WRITE_TOOLS}


def available(read_only: bool) -> tuple[ToolSpec, ...]:
    return READ_TOOLS if read_only else READ_TOOLS + WRITE_TOOLS
