"""
Foreign Key Repository.

Follows single-column foreign keys discovered at runtime:

- resolve_link(): fetch the row a cell points at
- related_options(): distinct values of the referenced column, for pickers

A column without a foreign key is never an error: resolve_link() answers
"not a link" and related_options() answers with no options.
"""

from typing import Any, Optional

from ..config import BrowserConfig
from ..infrastructure.database_client import DatabaseClient
from ..domain.errors import TableBrowserException, ValidationError
from ..domain.responses import LinkResolution, RelatedOption, RelatedOptionsResponse
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.sql_quoting import LIKE_ESCAPE_CHAR, QueryParams, escape_like_pattern, qualified_name, quote_identifier
from ..utils.value_coercion import coerce_value, normalize_row, normalize_value
from .catalog_repository import CatalogRepository
from .query_compiler import index_columns, pattern_keyword


logger = get_module_logger()

REFERENCE_SUFFIX = "_id"
REFERENCE_MARKER = "_fk_"


def looks_like_reference(column_name: str) -> bool:
    """Naming heuristic for columns worth offering a drill-in on (user_id, owner_fk_ref)."""
    return column_name.endswith(REFERENCE_SUFFIX) or REFERENCE_MARKER in column_name


class ForeignKeyRepository:
    """
    Repository for foreign key navigation.

    Usage:
        fk_repo = ForeignKeyRepository(db_client, catalog, settings.browser)
        link = await fk_repo.resolve_link("public", "profile", "user_id", "42")
        if link.is_link and link.row:
            print(link.target_table, link.row)
    """

    def __init__(self, db_client: DatabaseClient, catalog: CatalogRepository, config: BrowserConfig):
        self.db_client = db_client
        self.catalog = catalog
        self.config = config

    async def resolve_link(self, schema: str, table: str, column: str, value: Any) -> LinkResolution:
        """
        Fetch the row referenced by one cell.

        Args:
            schema: Schema of the referencing table
            table: Referencing table
            column: Referencing column
            value: Cell value (text or typed)

        Returns:
            LinkResolution; is_link=False if the column has no foreign key,
            row=None if nothing matches the value
        """
        trace_id = current_trace_id()

        fk = await self.catalog.find_foreign_key(schema, table, column)
        if fk is None:
            return LinkResolution(is_link=False)

        resolution = LinkResolution(
            is_link=True,
            target_schema=fk.target_schema,
            target_table=fk.target_table,
            target_column=fk.target_column,
        )

        if value is None or value == "":
            return resolution

        target_columns = index_columns(await self.catalog.list_columns(fk.target_schema, fk.target_table))

        try:
            key = coerce_value(value, target_columns.get(fk.target_column))
        except ValidationError as e:
            # A value of the wrong type cannot reference any row
            logger.warning(
                f"Link value does not match referenced column type: {e.message}",
                schema=schema,
                table=table,
                column=column,
                trace_id=trace_id
            )
            return resolution

        params = QueryParams()
        query = (
            f"SELECT * FROM {qualified_name(fk.target_schema, fk.target_table)} "
            f"WHERE {quote_identifier(fk.target_column)} = {params.bind(key)} LIMIT 1"
        )

        try:
            row = await self.db_client.execute_one(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to resolve link: {e.message}",
                schema=schema,
                table=table,
                column=column,
                operation="resolve_link",
                trace_id=trace_id
            )
            raise

        logger.info(
            "Link resolved",
            schema=schema,
            table=table,
            column=column,
            target_table=fk.target_table,
            found=row is not None,
            trace_id=trace_id
        )

        if row is not None:
            resolution.row = normalize_row(row)
        return resolution

    async def related_options(
        self,
        schema: str,
        table: str,
        column: str,
        search: Optional[str] = None,
    ) -> RelatedOptionsResponse:
        """
        List distinct values of the column a foreign key references.

        Args:
            search: Optional substring (matched case-insensitively by default,
                wildcards taken literally)

        Returns:
            Up to related_options_limit options ordered by value; no options
            if the column has no foreign key
        """
        trace_id = current_trace_id()

        fk = await self.catalog.find_foreign_key(schema, table, column)
        if fk is None:
            return RelatedOptionsResponse()

        target = quote_identifier(fk.target_column)
        params = QueryParams()
        conditions = [f"{target} IS NOT NULL"]
        if search:
            pattern = params.bind(f"%{escape_like_pattern(search)}%")
            conditions.append(
                f"{target}::text {pattern_keyword(self.config.case_insensitive_patterns)} {pattern} "
                f"ESCAPE '{LIKE_ESCAPE_CHAR}'"
            )

        query = (
            f"SELECT DISTINCT {target} AS value "
            f"FROM {qualified_name(fk.target_schema, fk.target_table)} "
            f"WHERE {' AND '.join(conditions)} "
            f"ORDER BY value LIMIT {params.bind(self.config.related_options_limit)}"
        )

        try:
            rows = await self.db_client.execute_query(query, params=params.values)
        except TableBrowserException as e:
            logger.error(
                f"Failed to fetch related options: {e.message}",
                schema=schema,
                table=table,
                column=column,
                operation="related_options",
                trace_id=trace_id
            )
            raise

        options = [
            RelatedOption(value=normalize_value(row["value"]), label=str(row["value"]))
            for row in rows
        ]

        logger.info(
            "Related options fetched",
            schema=schema,
            table=table,
            column=column,
            count=len(options),
            trace_id=trace_id
        )

        return RelatedOptionsResponse(
            target_schema=fk.target_schema,
            target_table=fk.target_table,
            target_column=fk.target_column,
            options=options,
        )
