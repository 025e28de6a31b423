"""Tool dispatch: name lookup, argument validation, handler call, error wrapping."""

import json
import logging
import time
from typing import Any

from mcp import types

from linear_mcp import tools
from linear_mcp.client.linear import LinearClient
from linear_mcp.client.raw import RawQueryClient
from linear_mcp.errors import ErrorKind, LinearAPIError, LinearMCPError, UnknownToolError, classify, describe
from linear_mcp.handlers import HANDLERS, Context
from linear_mcp.models import Projection
from linear_mcp.schemas import validate_args
from linear_mcp.tools import ToolSpec

logger = logging.getLogger(__name__)


def _text_result(text: str, *, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(content=[types.TextContent(type="text", text=text)], isError=is_error)


class Dispatcher:
    """Single entry point for tool calls.

    *read_only* is fixed at construction: mutating tools are then neither
    listed nor callable, and calling one reports it as an unknown tool.
    """

    def __init__(self, client: LinearClient, raw: RawQueryClient, *, read_only: bool = False) -> None:
        missing = sorted(set(tools.TOOLS) - set(HANDLERS))
        if missing:
            raise RuntimeError(f"Tools registered without a handler: {', '.join(missing)}")
        self._context = Context(client=client, raw=raw)
        self._read_only = read_only
        self._tools: dict[str, ToolSpec] = {spec.name: spec for spec in tools.available(read_only)}

    @property
    def read_only(self) -> bool:
        return self._read_only

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def list_tools(self) -> list[types.Tool]:
        return [spec.descriptor() for spec in self._tools.values()]

    async def call(self, name: str, arguments: Any) -> types.CallToolResult:
        spec = self._tools.get(name)
        if spec is None:
            logger.warning("Unknown tool requested", extra={"tool": name, "error": ErrorKind.UNKNOWN_TOOL.value})
            return _text_result(str(UnknownToolError(name)), is_error=True)

        started = time.perf_counter()
        try:
            args = validate_args(spec.args, arguments)
            result = await HANDLERS[name](self._context, args)
        except Exception as exc:
            elapsed = round((time.perf_counter() - started) * 1000, 1)
            kind = classify(exc)
            extra = {"tool": name, "duration_ms": elapsed, "error": kind.value}
            if isinstance(exc, LinearMCPError | LinearAPIError):
                logger.warning("Tool call failed: %s", exc, extra=extra)
            else:
                logger.exception("Tool call raised unexpectedly", extra=extra)
            return _text_result(f"Failed to {spec.action}: {describe(exc)}", is_error=True)

        payload = result.to_json() if isinstance(result, Projection) else result
        logger.info(
            "Tool call succeeded",
            extra={"tool": name, "duration_ms": round((time.perf_counter() - started) * 1000, 1)},
        )
        return _text_result(json.dumps(payload, indent=2, ensure_ascii=False))
