"""Abstract query executor shared by the typed client and the raw-query client."""

from abc import ABC, abstractmethod
from typing import Any


class QueryExecutor(ABC):
    @abstractmethod
    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]: ...
