"""Smoke tests for the CLI commands using typer CliRunner."""

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from mcp import types
from typer.testing import CliRunner

import linear_mcp.settings as settings_module
from linear_mcp.main import app
from linear_mcp.settings import LinearSettings

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in ("LINEAR_API_KEY", "LINEAR_MCP_PROFILE", "LINEAR_MCP_READ_ONLY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings_module, "CONFIG_PATH", tmp_path / "config.toml")
    settings_module._load_toml.cache_clear()
    with patch("linear_mcp.main.setup_logging"):
        yield
    settings_module._load_toml.cache_clear()


def _result(text: str, *, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(content=[types.TextContent(type="text", text=text)], isError=is_error)


class _FakeCall:
    def __init__(self, result: types.CallToolResult) -> None:
        self.result = result
        self.calls: list[tuple[LinearSettings, str, Any]] = []

    async def __call__(self, settings: LinearSettings, tool: str, arguments: Any) -> types.CallToolResult:
        self.calls.append((settings, tool, arguments))
        return self.result


class TestTools:
    def test_lists_all_tools(self) -> None:
        result = runner.invoke(app, ["tools"])
        assert result.exit_code == 0, result.output
        assert "list_issues" in result.output
        assert "create_issue" in result.output

    def test_read_only_hides_writes(self) -> None:
        result = runner.invoke(app, ["tools", "--read-only"])
        assert result.exit_code == 0, result.output
        assert "get_issue" in result.output
        assert "create_issue" not in result.output

    def test_read_only_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_MCP_READ_ONLY", "1")
        result = runner.invoke(app, ["tools"])
        assert "update_issue" not in result.output


class TestCall:
    def test_prints_result(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_env")
        fake = _FakeCall(_result('{"id": "user-1"}'))
        with patch("linear_mcp.main._call", fake):
            result = runner.invoke(app, ["call", "get_user", '{"userId": "user-1"}'])
        assert result.exit_code == 0, result.output
        assert '"id": "user-1"' in result.output
        _, tool, arguments = fake.calls[0]
        assert tool == "get_user"
        assert arguments == {"userId": "user-1"}

    def test_read_only_flag_reaches_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_env")
        fake = _FakeCall(_result("{}"))
        with patch("linear_mcp.main._call", fake):
            runner.invoke(app, ["call", "me", "--read-only"])
        settings, _, arguments = fake.calls[0]
        assert settings.mcp_read_only is True
        assert arguments == {}

    def test_error_result_exits_nonzero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_env")
        fake = _FakeCall(_result("Failed to get issue: Issue not found: ENG-9", is_error=True))
        with patch("linear_mcp.main._call", fake):
            result = runner.invoke(app, ["call", "get_issue", '{"issueId": "ENG-9"}'])
        assert result.exit_code == 1
        assert "Issue not found: ENG-9" in result.output

    def test_invalid_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_env")
        fake = _FakeCall(_result("{}"))
        with patch("linear_mcp.main._call", fake):
            result = runner.invoke(app, ["call", "list_issues", "{not json"])
        assert result.exit_code == 1
        assert "not valid JSON" in result.output
        assert fake.calls == []

    def test_missing_key_exits(self) -> None:
        fake = _FakeCall(_result("{}"))
        with patch("linear_mcp.main._call", fake):
            result = runner.invoke(app, ["call", "me"])
        assert result.exit_code == 1
        assert "LINEAR_API_KEY" in result.output
        assert fake.calls == []


class TestConfigShow:
    def test_masks_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "lin_api_supersecret12345")
        result = runner.invoke(app, ["config-show"])
        assert result.exit_code == 0, result.output
        assert "12345" in result.output
        assert "supersecret" not in result.output

    def test_unset_key(self) -> None:
        result = runner.invoke(app, ["config-show"])
        assert result.exit_code == 0, result.output
        assert "(not set)" in result.output


class TestServe:
    def test_missing_key_exits(self) -> None:
        with patch("linear_mcp.main.server.serve") as serve:
            result = runner.invoke(app, ["serve"])
        assert result.exit_code == 1
        serve.assert_not_called()
