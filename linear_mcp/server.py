"""MCP server over stdio, wired to a single Linear transport for the whole process."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import typer
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from linear_mcp.client.graphql import GraphQLTransport
from linear_mcp.client.linear import LinearClient
from linear_mcp.client.raw import RawQueryClient
from linear_mcp.dispatcher import Dispatcher
from linear_mcp.logging import setup_logging
from linear_mcp.settings import LinearSettings, get_settings, require_api_key

logger = logging.getLogger(__name__)

SERVER_NAME = "linear-mcp"


@asynccontextmanager
async def open_dispatcher(settings: LinearSettings) -> AsyncIterator[Dispatcher]:
    """Build the transport, both clients and the dispatcher; close the transport on exit."""
    transport = GraphQLTransport(
        require_api_key(settings),
        endpoint=settings.api_url,
        timeout=settings.timeout,
        rate_limit_retries=settings.rate_limit_retries,
        rate_limit_backoff=settings.rate_limit_backoff,
    )
    async with transport:
        yield Dispatcher(LinearClient(transport), RawQueryClient(transport), read_only=settings.mcp_read_only)


def build_server(dispatcher: Dispatcher) -> Server:
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return dispatcher.list_tools()

    # The dispatcher validates arguments itself so failures come back as tool errors.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        return await dispatcher.call(name, arguments)

    return server


async def serve(settings: LinearSettings) -> None:
    async with open_dispatcher(settings) as dispatcher:
        server = build_server(dispatcher)
        logger.info(
            "Starting %s on stdio (%d tools, read_only=%s)",
            SERVER_NAME,
            len(dispatcher.specs()),
            dispatcher.read_only,
        )
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


def run(profile: str | None = None) -> None:
    """Entry point for ``linear-mcp-server``."""
    try:
        settings = get_settings(profile)
        require_api_key(settings)
    except typer.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    setup_logging(settings.log_level, settings.log_file)
    asyncio.run(serve(settings))
