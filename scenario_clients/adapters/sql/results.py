from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, TypeVar

from scenario_clients.shared.result import ClientResult, Rows

T = TypeVar("T")


@dataclass(frozen=True)
class QuerySnapshot:
    """Driver-neutral copy of a cursor, taken while the connection is still held."""

    rows: Rows[dict[str, Any]]
    row_count: int
    last_insert_id: Any = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SqlQueryResult(ClientResult):
    kind: ClassVar[str] = "sql"

    rows: Rows[dict[str, Any]] | None = None
    row_count: int | None = None
    last_insert_id: Any = None
    warnings: tuple[str, ...] | None = None

    @classmethod
    def from_snapshot(cls, snapshot: QuerySnapshot, duration: float) -> "SqlQueryResult":
        return cls.success(
            duration=duration,
            rows=snapshot.rows,
            row_count=snapshot.row_count,
            last_insert_id=snapshot.last_insert_id,
            warnings=snapshot.warnings,
        )

    def map(self, fn: Callable[[dict[str, Any]], T]) -> list[T]:
        """Apply ``fn`` to every row; a failed result maps to an empty list."""
        return [fn(row) for row in self.rows or ()]

    def as_type(self, cls: Callable[..., T]) -> list[T]:
        """Build ``cls(**row)`` for every row (dataclasses, pydantic models, ...)."""
        return [cls(**row) for row in self.rows or ()]
