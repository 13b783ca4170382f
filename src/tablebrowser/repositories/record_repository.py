"""
Record Repository (query executor).

Runs the generic read and write statements for any table:

- count():  SELECT COUNT(*) FROM "s"."t" <where>
- page():   SELECT * FROM "s"."t" <where> <order by> LIMIT $n OFFSET $m
- insert(): INSERT INTO "s"."t" (...) VALUES (...) RETURNING *
- update(): UPDATE "s"."t" SET ... WHERE "key" = $n RETURNING *
- delete(): DELETE FROM "s"."t" WHERE "key" = ANY($n)

Every statement starts from the table's introspected columns: they validate
filter/sort columns, convert caller text to column types and identify the
row key. A table with no visible columns is reported as not found.

Architecture Notes:
- This is a REPOSITORY (data access layer); failures raise
- Structured mutation results are built one level up, in TableService
"""

from typing import Any, Dict, List, Optional, Sequence

from ..config import BrowserConfig
from ..infrastructure.database_client import DatabaseClient
from ..domain.catalog import ColumnDescriptor
from ..domain.errors import NotFoundError, TableBrowserException, ValidationError
from ..domain.requests import FilterSpec, SortSpec
from ..domain.types import DatabaseValue, RecordValues
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.sql_quoting import QueryParams, qualified_name, quote_identifier
from ..utils.value_coercion import coerce_record, coerce_value, normalize_row
from .catalog_repository import CatalogRepository
from .query_compiler import (
    compile_order_by,
    compile_where,
    index_columns,
    normalize_pagination,
    resolve_row_key,
)


logger = get_module_logger()

Row = Dict[str, DatabaseValue]


class RecordRepository:
    """
    Repository for paging and editing rows of arbitrary tables.

    Usage:
        records = RecordRepository(db_client, catalog, settings.browser)
        total = await records.count("public", "users", filter_spec)
        rows = await records.page("public", "users", page=2, page_size=50, sort=sort_spec)
        row = await records.insert("public", "users", {"email": "ada@example.com"})
    """

    def __init__(self, db_client: DatabaseClient, catalog: CatalogRepository, config: BrowserConfig):
        self.db_client = db_client
        self.catalog = catalog
        self.config = config

    async def describe(self, schema: str, table: str) -> List[ColumnDescriptor]:
        """
        Fetch a table's columns, treating an empty result as a missing table.

        Raises:
            ValidationError: If schema or table is not a valid identifier
            NotFoundError: If the table does not exist or is not visible
        """
        qualified_name(schema, table)

        columns = await self.catalog.list_columns(schema, table)
        if not columns:
            raise NotFoundError(
                f"Table '{schema}.{table}' not found",
                details={"schema": schema, "table": table}
            )
        return columns

    async def count(
        self,
        schema: str,
        table: str,
        filter_spec: Optional[FilterSpec] = None,
        columns: Optional[Sequence[ColumnDescriptor]] = None,
    ) -> int:
        """
        Count rows matching the filter.

        Args:
            schema: Schema name
            table: Table name
            filter_spec: Optional filter (same compiler as page())
            columns: Already-introspected columns, to skip a catalog round-trip

        Returns:
            Number of matching rows
        """
        trace_id = current_trace_id()
        source = qualified_name(schema, table)
        if columns is None:
            columns = await self.describe(schema, table)

        params = QueryParams()
        where = compile_where(filter_spec, columns, params, self.config.case_insensitive_patterns)
        query = " ".join(part for part in (f"SELECT COUNT(*) FROM {source}", where) if part)

        try:
            total = await self.db_client.execute_scalar(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to count rows: {e.message}",
                schema=schema,
                table=table,
                operation="count",
                trace_id=trace_id
            )
            raise

        logger.info("Rows counted", schema=schema, table=table, total=total, trace_id=trace_id)
        return int(total or 0)

    async def page(
        self,
        schema: str,
        table: str,
        page: Any = 1,
        page_size: Any = None,
        sort: Optional[SortSpec] = None,
        filter_spec: Optional[FilterSpec] = None,
        columns: Optional[Sequence[ColumnDescriptor]] = None,
    ) -> List[Row]:
        """
        Fetch one page of rows.

        page and page_size are normalized first (see normalize_pagination);
        the offset is (page - 1) * page_size.

        Returns:
            Rows as dictionaries with JSON-friendly values, in display order
        """
        trace_id = current_trace_id()
        source = qualified_name(schema, table)
        if columns is None:
            columns = await self.describe(schema, table)

        page_number, size = normalize_pagination(
            page,
            page_size,
            self.config.default_page_size,
            self.config.max_page_size
        )
        offset = (page_number - 1) * size

        params = QueryParams()
        where = compile_where(filter_spec, columns, params, self.config.case_insensitive_patterns)
        order_by = compile_order_by(sort, columns)
        limit = f"LIMIT {params.bind(size)} OFFSET {params.bind(offset)}"

        query = " ".join(part for part in (f"SELECT * FROM {source}", where, order_by, limit) if part)

        try:
            rows = await self.db_client.execute_query(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to fetch page: {e.message}",
                schema=schema,
                table=table,
                operation="page",
                page=page_number,
                page_size=size,
                trace_id=trace_id
            )
            raise

        logger.info(
            "Page fetched",
            schema=schema,
            table=table,
            page=page_number,
            page_size=size,
            row_count=len(rows),
            trace_id=trace_id
        )
        return [normalize_row(row) for row in rows]

    async def insert(self, schema: str, table: str, values: RecordValues) -> Row:
        """
        Insert one row.

        Columns absent from `values` take their database default; an empty
        `values` inserts a row of defaults.

        Returns:
            The row as stored (RETURNING *)

        Raises:
            ValidationError: On a malformed identifier or unconvertible value
            ConstraintError: If the database rejects the row
        """
        trace_id = current_trace_id()
        source = qualified_name(schema, table)
        columns = await self.describe(schema, table)
        converted = coerce_record(values, index_columns(columns))

        params = QueryParams()
        if converted:
            column_list = ", ".join(quote_identifier(name) for name in converted)
            placeholders = ", ".join(params.bind(value) for value in converted.values())
            query = f"INSERT INTO {source} ({column_list}) VALUES ({placeholders}) RETURNING *"
        else:
            query = f"INSERT INTO {source} DEFAULT VALUES RETURNING *"

        try:
            row = await self.db_client.execute_one(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to insert row: {e.message}",
                schema=schema,
                table=table,
                operation="insert",
                columns=list(converted),
                trace_id=trace_id
            )
            raise

        logger.info("Row inserted", schema=schema, table=table, trace_id=trace_id)
        return normalize_row(row or {})

    async def update(self, schema: str, table: str, row_id: Any, values: RecordValues) -> Optional[Row]:
        """
        Update one row addressed by its key.

        The key column itself is never written; a value for it in `values`
        is dropped.

        Returns:
            The row as stored, or None if no row has that key

        Raises:
            ValidationError: If nothing is left to set, the key is composite,
                or a value does not convert to its column type
            ConstraintError: If the database rejects the change
        """
        trace_id = current_trace_id()
        source = qualified_name(schema, table)
        columns = await self.describe(schema, table)
        key = resolve_row_key(columns)

        settable = {name: value for name, value in values.items() if name != key.name}
        if not settable:
            raise ValidationError(
                "No columns to update",
                details={"schema": schema, "table": table, "row_key": key.name}
            )

        converted = coerce_record(settable, index_columns(columns))

        params = QueryParams()
        assignments = ", ".join(
            f"{quote_identifier(name)} = {params.bind(value)}" for name, value in converted.items()
        )
        key_placeholder = params.bind(coerce_value(row_id, key))
        query = (
            f"UPDATE {source} SET {assignments} "
            f"WHERE {quote_identifier(key.name)} = {key_placeholder} RETURNING *"
        )

        try:
            row = await self.db_client.execute_one(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to update row: {e.message}",
                schema=schema,
                table=table,
                operation="update",
                row_id=str(row_id),
                trace_id=trace_id
            )
            raise

        if row is None:
            logger.warning(
                "No row matched update",
                schema=schema,
                table=table,
                row_id=str(row_id),
                trace_id=trace_id
            )
            return None

        logger.info("Row updated", schema=schema, table=table, row_id=str(row_id), trace_id=trace_id)
        return normalize_row(row)

    async def delete(self, schema: str, table: str, ids: Sequence[Any]) -> int:
        """
        Delete rows by key with a single array parameter.

        An empty `ids` deletes nothing and does not touch the database.

        Returns:
            Number of rows removed
        """
        trace_id = current_trace_id()
        source = qualified_name(schema, table)

        if not ids:
            logger.info("Nothing to delete", schema=schema, table=table, trace_id=trace_id)
            return 0

        columns = await self.describe(schema, table)
        key = resolve_row_key(columns)

        params = QueryParams()
        keys = params.bind([coerce_value(row_id, key) for row_id in ids])
        query = (
            f"WITH deleted AS ("
            f"DELETE FROM {source} WHERE {quote_identifier(key.name)} = ANY({keys}) RETURNING 1"
            f") SELECT COUNT(*) FROM deleted"
        )

        try:
            deleted = await self.db_client.execute_scalar(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to delete rows: {e.message}",
                schema=schema,
                table=table,
                operation="delete",
                requested=len(ids),
                trace_id=trace_id
            )
            raise

        logger.info(
            "Rows deleted",
            schema=schema,
            table=table,
            requested=len(ids),
            deleted=deleted,
            trace_id=trace_id
        )
        return int(deleted or 0)
