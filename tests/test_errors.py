"""Tests for error classification and the messages shown to callers."""

import pytest

from linear_mcp.errors import (
    RATE_LIMIT_HINT,
    ErrorKind,
    LinearAPIError,
    NotFoundError,
    RateLimitError,
    ToolValidationError,
    UnknownToolError,
    classify,
    describe,
    is_missing_entity,
    is_rate_limited,
)


class TestRateLimited:
    @pytest.mark.parametrize(
        "exc",
        [
            LinearAPIError("Linear API error: HTTP 429", status_code=429),
            LinearAPIError("Linear API error: slow down", codes=("RATELIMITED",)),
            LinearAPIError("Linear API error: Rate limit exceeded"),
            RateLimitError("too many"),
        ],
    )
    def test_detected(self, exc: Exception) -> None:
        assert is_rate_limited(exc)
        assert classify(exc) is ErrorKind.RATE_LIMIT

    def test_other_errors(self) -> None:
        assert not is_rate_limited(LinearAPIError("Linear API error: Forbidden", status_code=403))


class TestClassify:
    def test_kinds(self) -> None:
        assert classify(ToolValidationError(["x: required"])) is ErrorKind.VALIDATION
        assert classify(NotFoundError("Issue", "ENG-1")) is ErrorKind.NOT_FOUND
        assert classify(UnknownToolError("nope")) is ErrorKind.UNKNOWN_TOOL
        assert classify(LinearAPIError("Linear API error: boom")) is ErrorKind.UPSTREAM
        assert classify(ValueError("unexpected")) is ErrorKind.UPSTREAM

    def test_missing_entity(self) -> None:
        assert is_missing_entity(LinearAPIError("Linear API error: Entity not found: Issue"))
        assert not is_missing_entity(ValueError("Entity not found"))


class TestDescribe:
    def test_not_found_with_hint(self) -> None:
        exc = NotFoundError("Status", "Shipped", hint="Available statuses: Todo, Done")
        assert describe(exc) == "Status not found: Shipped. Available statuses: Todo, Done"

    def test_validation(self) -> None:
        exc = ToolValidationError(["teamId: required", "priority: must be between 0 and 4"])
        assert describe(exc) == "Invalid arguments: teamId: required; priority: must be between 0 and 4"

    def test_rate_limit_carries_hint(self) -> None:
        exc = LinearAPIError("Linear API error: Rate limit exceeded")
        assert describe(exc) == f"{RATE_LIMIT_HINT} (Linear API error: Rate limit exceeded)"

    def test_empty_message_uses_class_name(self) -> None:
        assert describe(KeyError()) == "KeyError"
