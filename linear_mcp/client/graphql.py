"""Async GraphQL transport for Linear's API."""

import asyncio
import logging
from typing import Any

import httpx

from linear_mcp.client.base import QueryExecutor
from linear_mcp.errors import LinearAPIError, is_rate_limited
from linear_mcp.settings import DEFAULT_API_URL

logger = logging.getLogger(__name__)

ENDPOINT = DEFAULT_API_URL


class GraphQLTransport(QueryExecutor):
    """One shared ``httpx.AsyncClient`` per process; every request goes through :meth:`execute`."""

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = ENDPOINT,
        timeout: float = 30.0,
        rate_limit_retries: int = 0,
        rate_limit_backoff: float = 1.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise RuntimeError("Linear API key is required")
        self._endpoint = endpoint
        self._retries = max(rate_limit_retries, 0)
        self._backoff = rate_limit_backoff
        self._http = http_client or httpx.AsyncClient(
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=timeout,
        )

    async def __aenter__(self) -> "GraphQLTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run *query* and return its ``data`` object.

        Rate-limited requests are rejected by Linear before they run, so they
        are the only ones retried.
        """
        attempt = 0
        while True:
            try:
                return await self._post(query, variables or {})
            except LinearAPIError as exc:
                if attempt >= self._retries or not is_rate_limited(exc):
                    raise
                delay = self._backoff * (2**attempt)
                attempt += 1
                logger.warning("Rate limited by Linear, retry %d/%d in %.1fs", attempt, self._retries, delay)
                await asyncio.sleep(delay)

    async def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._http.post(self._endpoint, json={"query": query, "variables": variables})
        except httpx.HTTPError as exc:
            raise LinearAPIError(f"Linear API request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("errors"):
            raise _graphql_error(payload["errors"], response.status_code)
        if response.status_code == 429:
            raise LinearAPIError("Linear API error: rate limit exceeded", status_code=429, codes=("RATELIMITED",))
        if response.is_error:
            raise LinearAPIError(
                f"Linear API error: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict) or "data" not in payload:
            raise LinearAPIError("Linear API error: response has no data", status_code=response.status_code)
        return payload["data"] or {}


def _graphql_error(errors: list[dict[str, Any]], status_code: int) -> LinearAPIError:
    messages = [str(err.get("message", err)) for err in errors]
    codes = tuple(
        str(err["extensions"]["code"])
        for err in errors
        if isinstance(err.get("extensions"), dict) and err["extensions"].get("code")
    )
    return LinearAPIError(f"Linear API error: {'; '.join(messages)}", status_code=status_code, codes=codes)
