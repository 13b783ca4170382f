"""
Catalog Repository for reading database structure.

This repository describes schemas, tables, columns, primary keys and
single-column foreign keys from PostgreSQL's information_schema and
pg_catalog using the DatabaseClient infrastructure layer.

Every catalog lookup binds the schema/table/column names as parameters;
nothing the caller sends is embedded in catalog SQL text. Results are read
fresh on every call (no caching), so concurrent callers share no state.
"""

from typing import List, Optional

from ..config_constants import SYSTEM_SCHEMAS, SYSTEM_SCHEMA_PREFIX
from ..infrastructure.database_client import DatabaseClient
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.sql_quoting import escape_like_pattern, qualified_name, quote_identifier
from ..domain.errors import TableBrowserException
from ..domain.catalog import ColumnDescriptor, ForeignKeyDescriptor


logger = get_module_logger()


class CatalogRepository:
    """
    Repository for catalog metadata operations.

    All methods are read-only and side-effect free.

    Usage:
        db_client = DatabaseClient(config)
        await db_client.connect()

        catalog = CatalogRepository(db_client)
        schemas = await catalog.list_schemas()
        columns = await catalog.list_columns("public", "users")
        fk = await catalog.find_foreign_key("public", "profile", "user_id")
    """

    def __init__(self, db_client: DatabaseClient):
        """
        Initialize catalog repository.

        Args:
            db_client: DatabaseClient instance for database operations
        """
        self.db_client = db_client

    async def list_schemas(self) -> List[str]:
        """
        Fetch all user schemas.

        Excludes information_schema, pg_catalog, pg_toast and every schema
        named with the pg_ prefix (pg_temp_N, pg_toast_temp_N, ...).

        Returns:
            Schema names ordered by name

        Raises:
            DatabaseError: If query execution fails
        """
        trace_id = current_trace_id()
        logger.info("Fetching schemas", trace_id=trace_id)

        query = """
            SELECT schema_name
            FROM information_schema.schemata
            WHERE schema_name <> ALL($1::text[])
                AND schema_name NOT LIKE $2
            ORDER BY schema_name
        """

        try:
            results = await self.db_client.execute_query(
                query=query,
                params=[list(SYSTEM_SCHEMAS), escape_like_pattern(SYSTEM_SCHEMA_PREFIX) + "%"]
            )
        except TableBrowserException as e:
            logger.error(f"Failed to fetch schemas: {e.message}", trace_id=trace_id)
            raise

        schemas = [row["schema_name"] for row in results]
        logger.info("Schemas fetched successfully", count=len(schemas), trace_id=trace_id)
        return schemas

    async def list_tables(self, schema: str) -> List[str]:
        """
        Fetch all base tables in a schema (views excluded).

        Args:
            schema: PostgreSQL schema name

        Returns:
            Table names ordered by name

        Raises:
            DatabaseError: If query execution fails
        """
        trace_id = current_trace_id()
        logger.info("Fetching tables", schema=schema, trace_id=trace_id)

        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
                AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """

        try:
            results = await self.db_client.execute_query(query=query, params=[schema])
        except TableBrowserException as e:
            logger.error(f"Failed to fetch tables from schema '{schema}': {e.message}", trace_id=trace_id)
            raise

        tables = [row["table_name"] for row in results]
        logger.info("Tables fetched successfully", count=len(tables), schema=schema, trace_id=trace_id)
        return tables

    async def list_columns(self, schema: str, table: str) -> List[ColumnDescriptor]:
        """
        Fetch all columns of a table.

        Args:
            schema: PostgreSQL schema name
            table: Table name

        Returns:
            ColumnDescriptor list ordered by ordinal position; empty if the
            table does not exist, is not visible to the connecting role, or
            is a view (views have no ctid to page by)

        Raises:
            DatabaseError: If query execution fails
        """
        trace_id = current_trace_id()
        logger.info("Fetching columns", schema=schema, table=table, trace_id=trace_id)

        # Base tables only. One row per column, flagged if any constraint it
        # takes part in is the primary key
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.is_nullable,
                c.column_default,
                c.ordinal_position,
                COALESCE(bool_or(tc.constraint_type = 'PRIMARY KEY'), false) AS is_primary_key
            FROM information_schema.columns c
            JOIN information_schema.tables t
                ON t.table_schema = c.table_schema
                AND t.table_name = c.table_name
                AND t.table_type = 'BASE TABLE'
            LEFT JOIN information_schema.key_column_usage kcu
                ON kcu.table_schema = c.table_schema
                AND kcu.table_name = c.table_name
                AND kcu.column_name = c.column_name
            LEFT JOIN information_schema.table_constraints tc
                ON tc.constraint_schema = kcu.constraint_schema
                AND tc.constraint_name = kcu.constraint_name
                AND tc.constraint_type = 'PRIMARY KEY'
            WHERE c.table_schema = $1 AND c.table_name = $2
            GROUP BY c.column_name, c.data_type, c.is_nullable, c.column_default, c.ordinal_position
            ORDER BY c.ordinal_position
        """

        try:
            results = await self.db_client.execute_query(query=query, params=[schema, table])
        except TableBrowserException as e:
            logger.error(
                f"Failed to fetch columns for table '{schema}.{table}': {e.message}",
                trace_id=trace_id
            )
            raise

        columns = [
            ColumnDescriptor(
                name=row["column_name"],
                declared_type=row["data_type"].lower(),
                nullable=(row["is_nullable"] == "YES"),
                default_expr=row["column_default"],
                is_primary_key=row["is_primary_key"],
                ordinal_position=row["ordinal_position"],
            )
            for row in results
        ]

        logger.info(
            "Columns fetched successfully",
            schema=schema,
            table=table,
            count=len(columns),
            trace_id=trace_id
        )
        return columns

    async def find_foreign_key(
        self,
        schema: str,
        table: str,
        column: str
    ) -> Optional[ForeignKeyDescriptor]:
        """
        Find the single-column foreign key declared on a column.

        Multi-column constraints are ignored. If several single-column
        foreign keys exist on the same column, the first by name wins.

        Args:
            schema: Schema of the referencing table
            table: Referencing table
            column: Referencing column

        Returns:
            ForeignKeyDescriptor, or None if the column references nothing
            (the caller treats None as "not a link")

        Raises:
            DatabaseError: If query execution fails
        """
        trace_id = current_trace_id()

        query = """
            SELECT
                con.conname AS constraint_name,
                tn.nspname AS target_schema,
                tcl.relname AS target_table,
                tatt.attname AS target_column
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class scl ON scl.oid = con.conrelid
            JOIN pg_catalog.pg_namespace sn ON sn.oid = scl.relnamespace
            JOIN pg_catalog.pg_class tcl ON tcl.oid = con.confrelid
            JOIN pg_catalog.pg_namespace tn ON tn.oid = tcl.relnamespace
            JOIN pg_catalog.pg_attribute satt
                ON satt.attrelid = con.conrelid AND satt.attnum = con.conkey[1]
            JOIN pg_catalog.pg_attribute tatt
                ON tatt.attrelid = con.confrelid AND tatt.attnum = con.confkey[1]
            WHERE con.contype = 'f'
                AND cardinality(con.conkey) = 1
                AND sn.nspname = $1
                AND scl.relname = $2
                AND satt.attname = $3
            ORDER BY con.conname
            LIMIT 1
        """

        try:
            row = await self.db_client.execute_one(query=query, params=[schema, table, column])
        except TableBrowserException as e:
            logger.error(
                f"Failed to look up foreign key for '{schema}.{table}.{column}': {e.message}",
                trace_id=trace_id
            )
            raise

        if row is None:
            logger.info(
                "No foreign key on column",
                schema=schema,
                table=table,
                column=column,
                trace_id=trace_id
            )
            return None

        return ForeignKeyDescriptor(
            constraint_name=row["constraint_name"],
            source_schema=schema,
            source_table=table,
            source_column=column,
            target_schema=row["target_schema"],
            target_table=row["target_table"],
            target_column=row["target_column"],
        )

    async def get_table_definition(self, schema: str, table: str) -> str:
        """
        Render a CREATE TABLE statement for a table, best effort.

        Built from pg_attribute (types via format_type, NOT NULL, defaults)
        and pg_constraint (pg_get_constraintdef). Any failure is logged and
        yields an empty string instead of an error.

        Args:
            schema: PostgreSQL schema name
            table: Table name

        Returns:
            DDL text, or "" if the table is unknown or the catalog could not be read
        """
        trace_id = current_trace_id()

        columns_query = """
            SELECT
                a.attname AS column_name,
                pg_catalog.format_type(a.atttypid, a.atttypmod) AS column_type,
                a.attnotnull AS not_null,
                pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS column_default
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_catalog.pg_attrdef d
                ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = $1
                AND c.relname = $2
                AND a.attnum > 0
                AND NOT a.attisdropped
            ORDER BY a.attnum
        """

        constraints_query = """
            SELECT
                con.conname AS constraint_name,
                pg_catalog.pg_get_constraintdef(con.oid, true) AS definition
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = $1 AND c.relname = $2
            ORDER BY
                CASE con.contype WHEN 'p' THEN 0 WHEN 'u' THEN 1 WHEN 'f' THEN 2 ELSE 3 END,
                con.conname
        """

        try:
            column_rows = await self.db_client.execute_query(query=columns_query, params=[schema, table])
            if not column_rows:
                logger.warning(
                    "No table definition available",
                    schema=schema,
                    table=table,
                    trace_id=trace_id
                )
                return ""

            constraint_rows = await self.db_client.execute_query(query=constraints_query, params=[schema, table])

            lines = []
            for row in column_rows:
                line = f"{quote_identifier(row['column_name'])} {row['column_type']}"
                if row["not_null"]:
                    line += " NOT NULL"
                if row["column_default"] is not None:
                    line += f" DEFAULT {row['column_default']}"
                lines.append(line)

            for row in constraint_rows:
                lines.append(f"CONSTRAINT {quote_identifier(row['constraint_name'])} {row['definition']}")

            body = ",\n    ".join(lines)
            return f"CREATE TABLE {qualified_name(schema, table)} (\n    {body}\n);"

        except Exception as e:
            # Definition is informational only
            logger.warning(
                f"Failed to build table definition for '{schema}.{table}': {e}",
                error_type=type(e).__name__,
                trace_id=trace_id
            )
            return ""
