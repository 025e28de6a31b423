"""linear-mcp CLI: run the server, inspect tools, call one from the shell."""

import asyncio
import json
from typing import Annotated, Any

import tomlkit
import typer
from mcp import types
from pydantic import SecretStr
from rich import print as rprint
from rich.table import Table

from linear_mcp import server
from linear_mcp.logging import setup_logging
from linear_mcp.settings import CONFIG_PATH, LinearSettings, _list_profiles, get_settings, require_api_key
from linear_mcp.tools import available

app = typer.Typer(help="linear-mcp: Linear as Model Context Protocol tools", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-P", help="Profile name from ~/.config/linear-mcp/config.toml"),
]
ReadOnlyOpt = Annotated[
    bool,
    typer.Option("--read-only", help="Hide and refuse mutating tools (same as LINEAR_MCP_READ_ONLY=true)"),
]


def _resolve(profile: str | None, read_only: bool = False) -> LinearSettings:
    settings = get_settings(profile)
    if read_only:
        settings = settings.model_copy(update={"mcp_read_only": True})
    return settings


async def _call(settings: LinearSettings, tool: str, arguments: Any) -> types.CallToolResult:
    async with server.open_dispatcher(settings) as dispatcher:
        return await dispatcher.call(tool, arguments)


def _result_text(result: types.CallToolResult) -> str:
    return "\n".join(block.text for block in result.content if isinstance(block, types.TextContent))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(profile: ProfileOpt = None, read_only: ReadOnlyOpt = False) -> None:
    """Run the MCP server on stdio."""
    settings = _resolve(profile, read_only)
    require_api_key(settings)
    setup_logging(settings.log_level, settings.log_file)
    asyncio.run(server.serve(settings))


@app.command("tools")
def tools_cmd(profile: ProfileOpt = None, read_only: ReadOnlyOpt = False) -> None:
    """List the tools a client would discover."""
    settings = _resolve(profile, read_only)
    specs = available(settings.mcp_read_only)

    title = "Tools (read-only)" if settings.mcp_read_only else "Tools"
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Description")

    for spec in specs:
        table.add_row(spec.name, "write" if spec.mutates else "read", spec.description)

    rprint(table)


@app.command("call")
def call_cmd(
    tool: Annotated[str, typer.Argument(help="Tool name, e.g. list_issues")],
    arguments: Annotated[str, typer.Argument(help="Tool arguments as a JSON object")] = "{}",
    profile: ProfileOpt = None,
    read_only: ReadOnlyOpt = False,
) -> None:
    """Call one tool and print its JSON result."""
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as exc:
        typer.echo(f"error: arguments are not valid JSON: {exc}", err=True)
        raise typer.Exit(1) from None

    settings = _resolve(profile, read_only)
    require_api_key(settings)
    setup_logging("WARNING", settings.log_file)
    result = asyncio.run(_call(settings, tool, parsed))

    if result.isError:
        typer.echo(_result_text(result), err=True)
        raise typer.Exit(1)
    typer.echo(_result_text(result))


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile)

    def mask(val: str | None, prefix: str = "") -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"{prefix}...{val[-5:]}"

    table = Table(title="linear-mcp Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("api_key", mask(settings.api_key.get_secret_value() if settings.api_key else None, "lin_api_"))
    table.add_row("api_url", settings.api_url)
    table.add_row("mcp_read_only", str(settings.mcp_read_only))
    table.add_row("timeout", f"{settings.timeout:g}s")
    table.add_row("rate_limit_retries", str(settings.rate_limit_retries))
    table.add_row("rate_limit_backoff", f"{settings.rate_limit_backoff:g}s")
    table.add_row("log_level", settings.log_level)
    table.add_row("log_file", str(settings.log_file) if settings.log_file else "[dim](not set)[/dim]")

    rprint(table)


@app.command("init")
def init(
    profile: Annotated[str | None, typer.Option("--profile", "-P", help="Profile name (default: top level)")] = None,
    api_key: Annotated[
        str | None, typer.Option("--api-key", help="Linear personal API key (prompted when omitted)")
    ] = None,
    read_only: ReadOnlyOpt = False,
    verify: Annotated[bool, typer.Option("--verify/--no-verify", help="Check the key by calling 'me'")] = True,
    set_default: Annotated[
        bool, typer.Option("--set-default/--no-set-default", help="Make this the default profile")
    ] = True,
) -> None:
    """Write an API key (and options) to ~/.config/linear-mcp/config.toml."""
    key = (api_key or typer.prompt("Linear API key", hide_input=True)).strip()
    if not key:
        rprint("[red]API key cannot be empty.[/red]")
        raise typer.Exit(1)

    if verify:
        settings = LinearSettings().model_copy(update={"api_key": SecretStr(key), "mcp_read_only": True})
        result = asyncio.run(_call(settings, "me", {}))
        if result.isError:
            rprint(f"[red]Key check failed:[/red] {_result_text(result)}")
            raise typer.Exit(1)
        viewer = json.loads(_result_text(result))
        rprint(f"[green]✓[/green] Authenticated as {viewer.get('name') or viewer.get('email')}")

    # Round-trip preserves any existing comments
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()

    values: dict[str, Any] = {"api_key": key}
    if read_only:
        values["mcp_read_only"] = True

    if profile:
        if profile in doc and profile not in _list_profiles(doc):
            rprint(f"[red]'{profile}' is already a top-level setting in {CONFIG_PATH}.[/red]")
            raise typer.Exit(1)
        doc[profile] = values
        if set_default:
            doc["default_profile"] = profile
    else:
        for name, value in values.items():
            doc[name] = value

    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    target = f"Profile '{profile}'" if profile else "Settings"
    rprint(f"[green]✓[/green] {target} written to {CONFIG_PATH}")
