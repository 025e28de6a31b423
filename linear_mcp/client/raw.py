"""Raw GraphQL escape hatch for reads the typed client does not model.

Only the queries below go through here. Each names the gap in
:class:`~linear_mcp.client.linear.LinearClient` that it covers. Responses are
returned untouched; callers null-check every level before projecting.
"""

from typing import Any

from linear_mcp.client.base import QueryExecutor
from linear_mcp.client.linear import COMMENT_FIELDS, DOCUMENT_FIELDS, PAGE_INFO, USER_FIELDS, USER_REF

TEAM_PROJECTS_PAGE = 50

# DocumentFilter has no team field; team-scoped documents are reached
# through the team's projects.
TEAM_DOCUMENTS = f"""
query TeamDocuments($teamId: String!, $first: Int, $projectsAfter: String) {{
  team(id: $teamId) {{
    id
    projects(first: {TEAM_PROJECTS_PAGE}, after: $projectsAfter) {{
      nodes {{
        id
        documents(first: $first) {{ nodes {{ {DOCUMENT_FIELDS} }} }}
      }}
      pageInfo {{ hasNextPage endCursor }}
    }}
  }}
}}
"""

# Project membership is kept out of the typed project selection so a
# failure here can degrade to creator + lead instead of failing the read.
PROJECT_MEMBERS = f"""
query ProjectMembers($id: String!) {{
  project(id: $id) {{
    members {{ nodes {{ {USER_FIELDS} }} }}
  }}
}}
"""

# The typed cycle selection carries no issues; this one is paged and picks
# the per-issue fields a cycle view needs.
CYCLE_ISSUES = f"""
query CycleIssues($id: String!, $first: Int, $after: String) {{
  cycle(id: $id) {{
    issues(first: $first, after: $after) {{
      nodes {{
        id
        identifier
        title
        priority
        estimate
        url
        completedAt
        state {{ id name color type }}
        assignee {{ {USER_REF} }}
        labels {{ nodes {{ id name color }} }}
      }}
      {PAGE_INFO}
    }}
  }}
}}
"""

# Comments are only reachable by id through the optional-argument
# comment(id:) root field, which the typed client has no reader for.
COMMENT_BY_ID = f"""
query CommentById($id: String!) {{
  comment(id: $id) {{ {COMMENT_FIELDS} }}
}}
"""


class RawQueryClient:
    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def raw_query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._executor.execute(query, variables)
