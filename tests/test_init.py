"""Tests for linear-mcp init."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import tomlkit
from mcp import types
from typer.testing import CliRunner

import linear_mcp.settings as settings_module
from linear_mcp.main import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "linear-mcp" / "config.toml"
    monkeypatch.delenv("LINEAR_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings_module, "CONFIG_PATH", path)
    settings_module._load_toml.cache_clear()
    with patch("linear_mcp.main.CONFIG_PATH", path):
        yield path
    settings_module._load_toml.cache_clear()


def _me(text: str, *, is_error: bool = False):
    async def call(settings: Any, tool: str, arguments: Any) -> types.CallToolResult:
        assert tool == "me"
        assert settings.api_key.get_secret_value() == "lin_api_new"
        return types.CallToolResult(content=[types.TextContent(type="text", text=text)], isError=is_error)

    return call


class TestInit:
    def test_writes_top_level_key(self, config_path: Path) -> None:
        result = runner.invoke(app, ["init", "--api-key", "lin_api_new", "--no-verify"])
        assert result.exit_code == 0, result.output
        config = tomlkit.load(config_path.open())
        assert config["api_key"] == "lin_api_new"
        assert "mcp_read_only" not in config

    def test_prompts_for_key(self, config_path: Path) -> None:
        result = runner.invoke(app, ["init", "--no-verify"], input="lin_api_new\n")
        assert result.exit_code == 0, result.output
        assert tomlkit.load(config_path.open())["api_key"] == "lin_api_new"

    def test_empty_key_exits(self, config_path: Path) -> None:
        result = runner.invoke(app, ["init", "--api-key", "  ", "--no-verify"])
        assert result.exit_code == 1
        assert not config_path.exists()

    def test_writes_profile_and_default(self, config_path: Path) -> None:
        result = runner.invoke(
            app, ["init", "--profile", "work", "--api-key", "lin_api_new", "--read-only", "--no-verify"]
        )
        assert result.exit_code == 0, result.output
        config = tomlkit.load(config_path.open())
        assert config["default_profile"] == "work"
        assert config["work"]["api_key"] == "lin_api_new"
        assert config["work"]["mcp_read_only"]

    def test_preserves_existing_content(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text('# my settings\nlog_level = "DEBUG"\n\n[personal]\napi_key = "lin_api_old"\n')
        result = runner.invoke(
            app, ["init", "--profile", "work", "--api-key", "lin_api_new", "--no-verify", "--no-set-default"]
        )
        assert result.exit_code == 0, result.output
        content = config_path.read_text()
        assert "# my settings" in content
        assert 'api_key = "lin_api_old"' in content
        assert "default_profile" not in content

    def test_refuses_scalar_name_as_profile(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text('log_level = "DEBUG"\n')
        result = runner.invoke(app, ["init", "--profile", "log_level", "--api-key", "lin_api_new", "--no-verify"])
        assert result.exit_code == 1
        assert config_path.read_text() == 'log_level = "DEBUG"\n'


class TestInitVerify:
    def test_verified_key_is_written(self, config_path: Path) -> None:
        viewer = json.dumps({"id": "user-1", "name": "Jane Doe"})
        with patch("linear_mcp.main._call", _me(viewer)):
            result = runner.invoke(app, ["init", "--api-key", "lin_api_new"])
        assert result.exit_code == 0, result.output
        assert "Authenticated as Jane Doe" in result.output
        assert config_path.exists()

    def test_rejected_key_is_not_written(self, config_path: Path) -> None:
        failure = "Failed to get authenticated user: Linear API error: Authentication required"
        with patch("linear_mcp.main._call", _me(failure, is_error=True)):
            result = runner.invoke(app, ["init", "--api-key", "lin_api_new"])
        assert result.exit_code == 1
        assert "Key check failed" in result.output
        assert not config_path.exists()
