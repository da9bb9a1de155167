from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from devicefarm.errors import ExternalCommandError

log = structlog.get_logger()

T = TypeVar("T")

UNKNOWN = "unknown"


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Outcome of one sub-query inside a composite operation.

    A failed sub-query is recorded instead of aborting the whole operation;
    ``error`` says why the field is missing.
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: T | None) -> QueryResult[T]:
        if value is None:
            return cls(error="no matching output")
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> QueryResult[T]:
        return cls(error=reason)

    def render(self, fmt: str = "{}") -> str:
        return fmt.format(self.value) if self.ok else UNKNOWN


async def attempt(query: Awaitable[T | None]) -> QueryResult[T]:
    """Await a sub-query, turning an external command failure into a failed result."""
    try:
        return QueryResult.success(await query)
    except ExternalCommandError as exc:
        log.debug("subquery.failed", command=exc.command_line, error=exc.message)
        return QueryResult.failure(exc.message)
