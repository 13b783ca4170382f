"""
Main FastAPI application for the table browser.

This module sets up the FastAPI application with logging, tracing and
error handling middleware, and exposes the browsing and editing operations
as a JSON API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from fastapi import FastAPI, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware

from .utils.logging import configure_logging, get_module_logger
from .utils.tracing import get_trace_id
from .config_constants import API_VERSION
from .domain.errors import http_status_for
from .domain.requests import InsertRecordRequest, UpdateRecordRequest, DeleteRecordsRequest
from .domain.responses import (
    HealthResponse,
    SchemaListResponse,
    TableListResponse,
    ColumnListResponse,
    TableDefinitionResponse,
    CountResponse,
    TablePage,
    MutationResult,
    DeleteResult,
    LinkResolution,
    RelatedOptionsResponse,
)
from .api.middleware import (
    trace_id_middleware,
    logging_middleware,
    register_exception_handlers,
    ERROR_RESPONSES,
)
from .api.dependencies import (
    SettingsDep,
    TableServiceDep,
    SortDep,
    FilterDep,
    OptionalDatabaseClientDep,
)
from .config import get_settings
from .infrastructure.database_client import DatabaseClient


# Configure logging on module import
configure_logging()
logger = get_module_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting table browser API server", version=API_VERSION)

    settings = get_settings()
    app.state.settings = settings
    logger.info("Settings loaded successfully")

    db_client = DatabaseClient(settings.database)
    try:
        await db_client.connect()
        logger.info("Database client connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect database client: {e}")
        # Continue without database - health check will report status

    app.state.db_client = db_client

    yield

    logger.info("Shutting down table browser API server")

    if hasattr(app.state, "db_client"):
        await app.state.db_client.close()
        logger.info("Database client closed")


app = FastAPI(
    title="Table Browser API",
    description="Browse, filter and edit the rows of any PostgreSQL table",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last registered = first executed
app.middleware("http")(logging_middleware)
app.middleware("http")(trace_id_middleware)

register_exception_handlers(app)


def _apply_result_status(response: Response, success: bool, error_code: Optional[str]) -> None:
    """Mutations report failures in the body; mirror them in the status code."""
    if not success:
        response.status_code = http_status_for(error_code)


# API Routes
@app.get("/", tags=["Root"])
async def root(settings: SettingsDep) -> Dict[str, Union[str, None]]:
    """
    Root endpoint returning basic API information.

    **Response**: Dict with message, version, trace_id, log_level
    """
    trace_id = get_trace_id()
    logger.info("Root endpoint accessed", trace_id=trace_id)

    return {
        "message": "Table Browser API",
        "version": API_VERSION,
        "trace_id": trace_id,
        "log_level": settings.app.log_level
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health(db_client: OptionalDatabaseClientDep) -> HealthResponse:
    """
    Health check endpoint.

    **Response Model**: `HealthResponse`
    - status: healthy when the database answers, degraded otherwise
    """
    trace_id = get_trace_id()
    logger.info("Health check endpoint accessed", trace_id=trace_id)

    database_status = "not_configured"
    if db_client:
        db_health = await db_client.health_check()
        database_status = db_health.get("status", "unknown")

    return HealthResponse(
        status="healthy" if database_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
        database_status=database_status,
    )


@app.get("/schemas", response_model=SchemaListResponse, tags=["Catalog"], responses=ERROR_RESPONSES)
async def list_schemas(service: TableServiceDep) -> SchemaListResponse:
    """List user schemas (system schemas excluded)."""
    return SchemaListResponse(schemas=await service.list_schemas())


@app.get(
    "/schemas/{schema}/tables",
    response_model=TableListResponse,
    tags=["Catalog"],
    responses=ERROR_RESPONSES
)
async def list_tables(schema: str, service: TableServiceDep) -> TableListResponse:
    """List base tables of a schema (views excluded)."""
    return TableListResponse(schema_name=schema, tables=await service.list_tables(schema))


@app.get(
    "/schemas/{schema}/tables/{table}/columns",
    response_model=ColumnListResponse,
    tags=["Catalog"],
    responses=ERROR_RESPONSES
)
async def list_columns(schema: str, table: str, service: TableServiceDep) -> ColumnListResponse:
    """
    List the columns of a table in ordinal order.

    Each column carries its declared type, nullability, default, primary
    key flag and the filter operators that suit its type.
    """
    columns = await service.list_columns(schema, table)
    return ColumnListResponse(schema_name=schema, table_name=table, columns=columns)


@app.get(
    "/schemas/{schema}/tables/{table}/definition",
    response_model=TableDefinitionResponse,
    tags=["Catalog"],
    responses=ERROR_RESPONSES
)
async def get_table_definition(schema: str, table: str, service: TableServiceDep) -> TableDefinitionResponse:
    """CREATE TABLE rendering of a table; empty when it cannot be produced."""
    definition = await service.get_table_definition(schema, table)
    return TableDefinitionResponse(schema_name=schema, table_name=table, definition=definition)


@app.get(
    "/schemas/{schema}/tables/{table}/count",
    response_model=CountResponse,
    tags=["Rows"],
    responses=ERROR_RESPONSES
)
async def count_rows(
    schema: str,
    table: str,
    service: TableServiceDep,
    filter_spec: FilterDep,
) -> CountResponse:
    """Count rows matching the optional filter."""
    return CountResponse(total_records=await service.count(schema, table, filter_spec))


@app.get(
    "/schemas/{schema}/tables/{table}/rows",
    response_model=TablePage,
    tags=["Rows"],
    responses=ERROR_RESPONSES
)
async def get_rows(
    schema: str,
    table: str,
    service: TableServiceDep,
    sort: SortDep,
    filter_spec: FilterDep,
    page: Optional[str] = Query(default=None, description="1-based page number"),
    page_size: Optional[str] = Query(default=None, description="Rows per page (capped)"),
) -> TablePage:
    """
    Fetch one page of rows.

    **Query parameters**:
    - page, page_size: raw values; invalid or non-positive values fall back to defaults
    - sort_column + sort_direction: optional single-column sort
    - filter_column + filter_operator + filter_value: optional single filter
    """
    return await service.get_page(
        schema,
        table,
        page=page,
        page_size=page_size,
        sort=sort,
        filter_spec=filter_spec,
    )


@app.post(
    "/schemas/{schema}/tables/{table}/rows",
    response_model=MutationResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Rows"],
    responses=ERROR_RESPONSES
)
async def insert_row(
    schema: str,
    table: str,
    request: InsertRecordRequest,
    service: TableServiceDep,
    response: Response,
) -> MutationResult:
    """Insert one row; the body reports success or the database's message."""
    result = await service.insert_record(schema, table, request.values)
    _apply_result_status(response, result.success, result.error_code)
    return result


@app.post(
    "/schemas/{schema}/tables/{table}/rows/delete",
    response_model=DeleteResult,
    tags=["Rows"],
    responses=ERROR_RESPONSES
)
async def delete_rows(
    schema: str,
    table: str,
    request: DeleteRecordsRequest,
    service: TableServiceDep,
    response: Response,
) -> DeleteResult:
    """Delete rows by key. An empty id list deletes nothing."""
    result = await service.delete_records(schema, table, request.ids)
    _apply_result_status(response, result.success, result.error_code)
    return result


@app.patch(
    "/schemas/{schema}/tables/{table}/rows/{row_id}",
    response_model=MutationResult,
    tags=["Rows"],
    responses=ERROR_RESPONSES
)
async def update_row(
    schema: str,
    table: str,
    row_id: str,
    request: UpdateRecordRequest,
    service: TableServiceDep,
    response: Response,
) -> MutationResult:
    """Update one row by key; a key matching no row yields 404 with error_code NOT_FOUND."""
    result = await service.update_record(schema, table, row_id, request.values)
    _apply_result_status(response, result.success, result.error_code)
    return result


@app.get(
    "/schemas/{schema}/tables/{table}/columns/{column}/link",
    response_model=LinkResolution,
    tags=["Foreign Keys"],
    responses=ERROR_RESPONSES
)
async def resolve_link(
    schema: str,
    table: str,
    column: str,
    service: TableServiceDep,
    value: Optional[str] = Query(default=None, description="Cell value to follow"),
) -> LinkResolution:
    """Follow a foreign key from one cell; is_link=false when the column references nothing."""
    return await service.resolve_link(schema, table, column, value)


@app.get(
    "/schemas/{schema}/tables/{table}/columns/{column}/options",
    response_model=RelatedOptionsResponse,
    tags=["Foreign Keys"],
    responses=ERROR_RESPONSES
)
async def related_options(
    schema: str,
    table: str,
    column: str,
    service: TableServiceDep,
    search: Optional[str] = Query(default=None, description="Substring to match"),
) -> RelatedOptionsResponse:
    """Distinct values of the referenced column, for a picker."""
    return await service.related_options(schema, table, column, search)
