"""
Table Service for orchestrating browsing and editing.

This service sits between the API layer and the repositories:

- Reads (schemas, tables, columns, definition, count, page, links, options)
  pass repository results through and let errors propagate to the API's
  exception handlers.
- Mutations (insert, update, delete) never raise. Every failure, expected
  or not, comes back as a result with success=False, the message and an
  error code, so a caller can show it next to the form that caused it.
"""

from typing import Any, List, Optional, Sequence

from ..domain.base_enums import MutationKind
from ..domain.catalog import ColumnDescriptor
from ..domain.errors import NotFoundError, TableBrowserException
from ..domain.requests import FilterSpec, SortSpec
from ..domain.responses import (
    DeleteResult,
    LinkResolution,
    MutationResult,
    RelatedOptionsResponse,
    TablePage,
)
from ..domain.types import RecordValues
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.foreign_key_repository import ForeignKeyRepository
from ..repositories.query_compiler import normalize_pagination
from ..repositories.record_repository import RecordRepository
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()

UNEXPECTED_ERROR_CODE = "INTERNAL_ERROR"


class TableService:
    """
    Service for table browsing business logic.

    Usage:
        service = TableService(catalog, records, foreign_keys)
        page = await service.get_page("public", "users", page="2", sort=SortSpec(column="email"))
        result = await service.insert_record("public", "users", {"email": "ada@example.com"})
        if not result.success:
            print(result.error)
    """

    def __init__(
        self,
        catalog: CatalogRepository,
        records: RecordRepository,
        foreign_keys: ForeignKeyRepository,
    ):
        """
        Initialize table service.

        Args:
            catalog: CatalogRepository for structure lookups
            records: RecordRepository for row reads and writes
            foreign_keys: ForeignKeyRepository for link navigation
        """
        self.catalog = catalog
        self.records = records
        self.foreign_keys = foreign_keys

        logger.debug("TableService initialized")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_schemas(self) -> List[str]:
        return await self.catalog.list_schemas()

    async def list_tables(self, schema: str) -> List[str]:
        return await self.catalog.list_tables(schema)

    async def list_columns(self, schema: str, table: str) -> List[ColumnDescriptor]:
        """Columns of a table; NotFoundError if the table is unknown."""
        return await self.records.describe(schema, table)

    async def get_table_definition(self, schema: str, table: str) -> str:
        return await self.catalog.get_table_definition(schema, table)

    async def count(self, schema: str, table: str, filter_spec: Optional[FilterSpec] = None) -> int:
        return await self.records.count(schema, table, filter_spec)

    async def get_page(
        self,
        schema: str,
        table: str,
        page: Any = 1,
        page_size: Any = None,
        sort: Optional[SortSpec] = None,
        filter_spec: Optional[FilterSpec] = None,
    ) -> TablePage:
        """
        Fetch columns, total and one page of rows in a single result.

        Columns are introspected once and shared by the count and page
        statements, so both see the same filter.
        """
        trace_id = current_trace_id()
        columns = await self.records.describe(schema, table)

        page_number, size = normalize_pagination(
            page,
            page_size,
            self.records.config.default_page_size,
            self.records.config.max_page_size
        )

        total = await self.records.count(schema, table, filter_spec, columns=columns)
        rows = await self.records.page(
            schema,
            table,
            page=page_number,
            page_size=size,
            sort=sort,
            filter_spec=filter_spec,
            columns=columns,
        )

        logger.info(
            "Table page assembled",
            schema=schema,
            table=table,
            page=page_number,
            page_size=size,
            total_records=total,
            trace_id=trace_id
        )

        return TablePage(
            schema_name=schema,
            table_name=table,
            columns=columns,
            rows=rows,
            total_records=total,
            page=page_number,
            page_size=size,
            sort=sort,
            filter=filter_spec,
        )

    async def resolve_link(self, schema: str, table: str, column: str, value: Any) -> LinkResolution:
        return await self.foreign_keys.resolve_link(schema, table, column, value)

    async def related_options(
        self,
        schema: str,
        table: str,
        column: str,
        search: Optional[str] = None,
    ) -> RelatedOptionsResponse:
        return await self.foreign_keys.related_options(schema, table, column, search)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _log_failure(self, kind: MutationKind, schema: str, table: str, error: Exception) -> None:
        trace_id = current_trace_id()
        if isinstance(error, TableBrowserException):
            logger.warning(
                f"{kind.value.capitalize()} failed: {error.message}",
                schema=schema,
                table=table,
                operation=kind.value,
                error_code=error.error_code,
                trace_id=trace_id
            )
        else:
            logger.error(
                f"Unexpected error during {kind.value}: {error}",
                schema=schema,
                table=table,
                operation=kind.value,
                error_type=type(error).__name__,
                trace_id=trace_id,
                exc_info=True
            )

    @staticmethod
    def _failure_fields(error: Exception) -> dict:
        if isinstance(error, TableBrowserException):
            return {"error": error.message, "error_code": error.error_code}
        return {"error": str(error) or type(error).__name__, "error_code": UNEXPECTED_ERROR_CODE}

    async def insert_record(self, schema: str, table: str, values: RecordValues) -> MutationResult:
        try:
            row = await self.records.insert(schema, table, values)
        except Exception as e:
            self._log_failure(MutationKind.INSERT, schema, table, e)
            return MutationResult(success=False, **self._failure_fields(e))

        return MutationResult(success=True, data=row)

    async def update_record(self, schema: str, table: str, row_id: Any, values: RecordValues) -> MutationResult:
        """
        Update one row.

        A key that matches no row is reported as success=False with
        error_code NOT_FOUND, not as a database error.
        """
        try:
            row = await self.records.update(schema, table, row_id, values)
            if row is None:
                raise NotFoundError(
                    f"No row with key {row_id!r} in '{schema}.{table}'",
                    details={"schema": schema, "table": table, "row_id": str(row_id)}
                )
        except Exception as e:
            self._log_failure(MutationKind.UPDATE, schema, table, e)
            return MutationResult(success=False, **self._failure_fields(e))

        return MutationResult(success=True, data=row)

    async def delete_records(self, schema: str, table: str, ids: Sequence[Any]) -> DeleteResult:
        try:
            deleted = await self.records.delete(schema, table, ids)
        except Exception as e:
            self._log_failure(MutationKind.DELETE, schema, table, e)
            return DeleteResult(success=False, **self._failure_fields(e))

        return DeleteResult(success=True, deleted_count=deleted)
