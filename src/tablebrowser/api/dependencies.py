"""
FastAPI dependencies for dependency injection.

Routes depend on the TableService (API → Service → Repository →
Infrastructure); only the health check reaches the database client
directly, and it tolerates the client being absent.
"""

from typing import Annotated, Optional

from fastapi import Depends, Query, Request

from ..infrastructure.database_client import DatabaseClient
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.foreign_key_repository import ForeignKeyRepository
from ..repositories.record_repository import RecordRepository
from ..services.table_service import TableService
from ..domain.requests import FilterSpec, SortSpec
from ..domain.errors import ConfigurationError, ConnectivityError
from ..config import Settings


def get_settings(request: Request) -> Settings:
    """
    Dependency to get the settings from app state.

    Raises:
        ConfigurationError: If settings are not initialized
    """
    if not hasattr(request.app.state, "settings"):
        raise ConfigurationError("Settings not initialized")

    return request.app.state.settings


def get_db_client_optional(request: Request) -> DatabaseClient | None:
    """Get database client if available, None otherwise."""
    return getattr(request.app.state, "db_client", None)


def get_table_service(request: Request) -> TableService:
    """
    Dependency to get a TableService instance.

    Repositories are cheap wrappers around the shared DatabaseClient and
    are built per request; nothing is cached between requests.

    Usage in routes:
        @app.get("/schemas")
        async def list_schemas(service: TableServiceDep):
            return await service.list_schemas()

    Raises:
        ConnectivityError: If the database client was never created
        ConfigurationError: If settings are not initialized
    """
    if not hasattr(request.app.state, "db_client"):
        raise ConnectivityError("Database client not initialized")
    if not hasattr(request.app.state, "settings"):
        raise ConfigurationError("Settings not initialized")

    db_client = request.app.state.db_client
    settings = request.app.state.settings

    catalog = CatalogRepository(db_client)
    return TableService(
        catalog=catalog,
        records=RecordRepository(db_client, catalog, settings.browser),
        foreign_keys=ForeignKeyRepository(db_client, catalog, settings.browser),
    )


def get_sort_spec(
    sort_column: Annotated[Optional[str], Query(description="Column to sort by")] = None,
    sort_direction: Annotated[Optional[str], Query(description="asc or desc")] = None,
) -> Optional[SortSpec]:
    """Sort from query parameters; active only when both column and direction are given."""
    if not sort_column or not sort_direction:
        return None
    return SortSpec(column=sort_column, direction=sort_direction)


def get_filter_spec(
    filter_column: Annotated[Optional[str], Query(description="Column to filter on")] = None,
    filter_operator: Annotated[Optional[str], Query(description="eq, neq, contains, starts_with, ends_with, gt, gte, lt, lte")] = None,
    filter_value: Annotated[Optional[str], Query(description="Filter value as text")] = None,
) -> Optional[FilterSpec]:
    """Filter from query parameters; active only when column, operator and value are all given."""
    if not filter_column or not filter_operator or not filter_value:
        return None
    return FilterSpec(column=filter_column, operator=filter_operator, value=filter_value)


# Type aliases for cleaner route signatures
TableServiceDep = Annotated[TableService, Depends(get_table_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
SortDep = Annotated[Optional[SortSpec], Depends(get_sort_spec)]
FilterDep = Annotated[Optional[FilterSpec], Depends(get_filter_spec)]

# Optional client dependency for health checks
OptionalDatabaseClientDep = Annotated[DatabaseClient | None, Depends(get_db_client_optional)]
