"""Tests for LinearClient against a mocked GraphQL endpoint."""

from typing import Any

import pytest

from linear_mcp.client.linear import CHILD_PAGE_SIZE, LABEL_ISSUE_COUNT_MAX_PAGES, LinearClient
from linear_mcp.errors import LinearAPIError


class TestById:
    async def test_returns_node(self, graphql: Any, client: LinearClient, issue_node: dict) -> None:
        graphql.on("GetIssue", {"issue": issue_node})
        node = await client.issue("ENG-1")
        assert node is not None
        assert node["identifier"] == "ENG-1"
        assert graphql.variables("GetIssue") == [{"id": "ENG-1"}]

    async def test_null_is_none(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("GetTeam", {"team": None})
        assert await client.team("missing") is None

    async def test_entity_not_found_is_none(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("GetProject", errors=[{"message": "Entity not found: Project"}])
        assert await client.project("missing") is None

    async def test_other_errors_propagate(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("GetCycle", errors=[{"message": "Authentication required"}])
        with pytest.raises(LinearAPIError, match="Authentication required"):
            await client.cycle("cycle-1")


class TestPages:
    async def test_unset_variables_are_not_sent(self, graphql: Any, client: LinearClient, page_info: Any) -> None:
        graphql.on("ListIssues", {"issues": {"nodes": [], "pageInfo": page_info()}})
        await client.issues(filter={}, first=50)
        assert graphql.variables("ListIssues") == [{"first": 50}]

    async def test_filter_and_order_are_sent(self, graphql: Any, client: LinearClient, page_info: Any) -> None:
        graphql.on("ListProjects", {"projects": {"nodes": [], "pageInfo": page_info()}})
        await client.projects(filter={"health": {"eq": "atRisk"}}, first=5, after="c1", order_by="updatedAt")
        assert graphql.variables("ListProjects") == [
            {"filter": {"health": {"eq": "atRisk"}}, "first": 5, "after": "c1", "orderBy": "updatedAt"}
        ]

    async def test_missing_connection_is_empty(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("ListTeams", {"teams": None})
        assert await client.teams(first=10) == {"nodes": [], "pageInfo": {}}

    async def test_search_uses_issue_search(self, graphql: Any, client: LinearClient, page_info: Any) -> None:
        graphql.on("SearchIssues", {"issueSearch": {"nodes": [], "pageInfo": page_info()}})
        await client.search_issues("login", first=3)
        assert graphql.variables("SearchIssues") == [{"query": "login", "first": 3}]


class TestConnections:
    async def test_issue_comments(self, graphql: Any, client: LinearClient, comment_node: dict) -> None:
        graphql.on("IssueComments", {"issue": {"comments": {"nodes": [comment_node], "pageInfo": {}}}})
        assert await client.issue_comments("issue-1") == [comment_node]
        assert graphql.variables("IssueComments") == [{"id": "issue-1", "first": 100}]

    async def test_missing_parent_is_empty(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("TeamStates", {"team": None})
        assert await client.team_states("team-1") == []

    async def test_unpaged_children_ask_for_a_full_page(self, graphql: Any, client: LinearClient) -> None:
        states = [{"id": f"state-{n}"} for n in range(60)]
        graphql.on("TeamStates", {"team": {"states": {"nodes": states, "pageInfo": {"hasNextPage": True}}}})
        assert len(await client.team_states("team-1")) == 60
        assert graphql.variables("TeamStates") == [{"id": "team-1", "first": CHILD_PAGE_SIZE}]

    async def test_label_issue_count_walks_pages(self, graphql: Any, client: LinearClient) -> None:
        def reply(variables: dict) -> dict:
            if variables.get("after") is None:
                nodes = [{"id": f"i{n}"} for n in range(250)]
                page = {"nodes": nodes, "pageInfo": {"hasNextPage": True, "endCursor": "c1"}}
            else:
                page = {"nodes": [{"id": "last"}], "pageInfo": {"hasNextPage": False, "endCursor": "c2"}}
            return {"issueLabel": {"issues": page}}

        graphql.on("LabelIssueIds", reply)
        assert await client.label_issue_count("label-1") == (251, False)
        assert [v.get("after") for v in graphql.variables("LabelIssueIds")] == [None, "c1"]

    async def test_label_issue_count_is_capped(self, graphql: Any, client: LinearClient) -> None:
        def reply(variables: dict) -> dict:
            n = int((variables.get("after") or "c0")[1:]) + 1
            page = {"nodes": [{"id": f"i{n}"}], "pageInfo": {"hasNextPage": True, "endCursor": f"c{n}"}}
            return {"issueLabel": {"issues": page}}

        graphql.on("LabelIssueIds", reply)
        assert await client.label_issue_count("label-1") == (LABEL_ISSUE_COUNT_MAX_PAGES, True)
        assert len(graphql.variables("LabelIssueIds")) == LABEL_ISSUE_COUNT_MAX_PAGES


class TestMutations:
    async def test_returns_entity(self, graphql: Any, client: LinearClient, label_node: dict) -> None:
        graphql.on("UpdateLabel", {"issueLabelUpdate": {"success": True, "issueLabel": label_node}})
        assert await client.update_label("label-1", {"color": "#000000"}) == label_node
        assert graphql.variables("UpdateLabel") == [{"id": "label-1", "input": {"color": "#000000"}}]

    async def test_success_false_raises(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("CreateIssue", {"issueCreate": {"success": False, "issue": None}})
        with pytest.raises(LinearAPIError, match="success=false"):
            await client.create_issue({"title": "x", "teamId": "team-1"})

    async def test_missing_entity_raises(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("CreateCycle", {"cycleCreate": {"success": True, "cycle": None}})
        with pytest.raises(LinearAPIError, match="returned no cycle"):
            await client.create_cycle({"teamId": "team-1"})

    async def test_delete_comment(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("DeleteComment", {"commentDelete": {"success": True}})
        assert await client.delete_comment("comment-1") is True


class TestViewer:
    async def test_returns_viewer(self, graphql: Any, client: LinearClient, user_node: dict) -> None:
        graphql.on("Viewer", {"viewer": {**user_node, "teams": {"nodes": []}}})
        assert (await client.viewer())["id"] == "user-1"

    async def test_missing_viewer_raises(self, graphql: Any, client: LinearClient) -> None:
        graphql.on("Viewer", {"viewer": None})
        with pytest.raises(LinearAPIError, match="no user"):
            await client.viewer()
