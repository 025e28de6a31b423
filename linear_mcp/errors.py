"""Error taxonomy for tool calls and the single place that classifies failures."""

from enum import StrEnum


class LinearAPIError(RuntimeError):
    """Raised by the GraphQL transport for any failed Linear request."""

    def __init__(self, message: str, *, status_code: int | None = None, codes: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.codes = codes


class LinearMCPError(Exception):
    """Base class for failures the dispatcher reports to the caller."""


class ToolValidationError(LinearMCPError):
    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"Invalid arguments: {'; '.join(violations)}")


class NotFoundError(LinearMCPError):
    def __init__(self, entity: str, entity_id: str, hint: str | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found: {entity_id}"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class RateLimitError(LinearMCPError):
    pass


class UpstreamError(LinearMCPError):
    pass


class UnknownToolError(LinearMCPError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    UPSTREAM = "upstream"
    UNKNOWN_TOOL = "unknown_tool"


RATE_LIMIT_CODES = frozenset({"RATELIMITED", "RATE_LIMITED"})

RATE_LIMIT_HINT = "Linear API rate limit exceeded. Retry later or request fewer results with a smaller `first`."


def is_rate_limited(exc: BaseException) -> bool:
    """Return True if *exc* reports that Linear's rate limit was hit.

    Structured signals (HTTP 429, ``extensions.code``) are checked first; the
    message substring match is kept for errors that carry neither.
    """
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, LinearAPIError):
        if exc.status_code == 429 or RATE_LIMIT_CODES.intersection(exc.codes):
            return True
    return "rate limit" in str(exc).lower()


def is_missing_entity(exc: BaseException) -> bool:
    """Linear answers a by-id read of an unknown id with an error instead of null."""
    return isinstance(exc, LinearAPIError) and "entity not found" in str(exc).lower()


def classify(exc: BaseException) -> ErrorKind:
    if isinstance(exc, ToolValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, UnknownToolError):
        return ErrorKind.UNKNOWN_TOOL
    if is_rate_limited(exc):
        return ErrorKind.RATE_LIMIT
    return ErrorKind.UPSTREAM


def describe(exc: BaseException) -> str:
    """Human-readable detail for *exc*, appended after the ``Failed to ...:`` prefix."""
    kind = classify(exc)
    if kind is ErrorKind.RATE_LIMIT:
        return f"{RATE_LIMIT_HINT} ({exc})"
    return str(exc) or exc.__class__.__name__
