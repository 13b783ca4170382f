"""Test doubles shared by the unit tests."""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

from tablebrowser.config import BrowserConfig
from tablebrowser.domain.catalog import ColumnDescriptor, ForeignKeyDescriptor


def column(name: str, declared_type: str = "text", primary_key: bool = False, position: int = 0) -> ColumnDescriptor:
    return ColumnDescriptor(
        name=name,
        declared_type=declared_type,
        nullable=not primary_key,
        is_primary_key=primary_key,
        ordinal_position=position,
    )


USER_COLUMNS = [
    column("id", "integer", primary_key=True, position=1),
    column("email", "text", position=2),
    column("age", "integer", position=3),
    column("active", "boolean", position=4),
    column("created_at", "timestamp with time zone", position=5),
    column("tags", "array", position=6),
]


class FakeDatabaseClient:
    """
    Records every statement instead of running it.

    Results are served from queues keyed by call kind; an exception placed
    in a queue is raised instead of returned.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, List[Any]]] = []
        self.query_results: List[Any] = []
        self.one_results: List[Any] = []
        self.scalar_results: List[Any] = []

    def _next(self, queue: List[Any], default: Any) -> Any:
        result = queue.pop(0) if queue else default
        if isinstance(result, Exception):
            raise result
        return result

    async def execute_query(self, query: str, params: Optional[List[Any]] = None, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        self.calls.append(("query", query, list(params or [])))
        return self._next(self.query_results, [])

    async def execute_one(self, query: str, params: Optional[List[Any]] = None, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        self.calls.append(("one", query, list(params or [])))
        return self._next(self.one_results, None)

    async def execute_scalar(self, query: str, params: Optional[List[Any]] = None, timeout: Optional[float] = None) -> Any:
        self.calls.append(("scalar", query, list(params or [])))
        return self._next(self.scalar_results, 0)


class FakeCatalog:
    """Serves fixed columns and foreign keys per table."""

    def __init__(
        self,
        columns: Optional[Dict[Tuple[str, str], List[ColumnDescriptor]]] = None,
        foreign_keys: Optional[Dict[Tuple[str, str, str], ForeignKeyDescriptor]] = None,
    ) -> None:
        self.columns = columns or {}
        self.foreign_keys = foreign_keys or {}
        self.column_lookups: List[Tuple[str, str]] = []

    async def list_columns(self, schema: str, table: str) -> List[ColumnDescriptor]:
        self.column_lookups.append((schema, table))
        return list(self.columns.get((schema, table), []))

    async def find_foreign_key(self, schema: str, table: str, column: str) -> Optional[ForeignKeyDescriptor]:
        return self.foreign_keys.get((schema, table, column))


def browser_config(**overrides: Any) -> BrowserConfig:
    return BrowserConfig(**overrides)


class FailingConnection:
    """asyncpg connection stand-in whose every fetch raises."""

    def __init__(self, error: Exception):
        self.error = error

    async def fetch(self, query: str, *args: Any, timeout: Optional[float] = None) -> Any:
        raise self.error

    fetchrow = fetch
    fetchval = fetch


class FailingPool:
    """Pool stand-in handing out FailingConnection objects; assign to DatabaseClient._pool."""

    def __init__(self, error: Exception):
        self.error = error

    @asynccontextmanager
    async def acquire(self):
        yield FailingConnection(self.error)

    def get_size(self) -> int:
        return 1

    async def close(self) -> None:
        return None
