"""
Domain package for the table browser.

This package contains all domain models, enums and value objects
used throughout the application for type safety and validation.
"""

from .base_enums import (
    OperatorKind,
    SortDirection,
    OperatorFamily,
    MutationKind,
)
from .catalog import ColumnDescriptor, ForeignKeyDescriptor, operator_family
from .requests import (
    SortSpec,
    FilterSpec,
    InsertRecordRequest,
    UpdateRecordRequest,
    DeleteRecordsRequest,
)
from .responses import (
    HealthResponse,
    ErrorResponse,
    SchemaListResponse,
    TableListResponse,
    ColumnListResponse,
    TableDefinitionResponse,
    CountResponse,
    TablePage,
    MutationResult,
    DeleteResult,
    LinkResolution,
    RelatedOption,
    RelatedOptionsResponse,
)

__all__ = [
    # Enums
    "OperatorKind",
    "SortDirection",
    "OperatorFamily",
    "MutationKind",

    # Catalog
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "operator_family",

    # Requests
    "SortSpec",
    "FilterSpec",
    "InsertRecordRequest",
    "UpdateRecordRequest",
    "DeleteRecordsRequest",

    # Responses
    "HealthResponse",
    "ErrorResponse",
    "SchemaListResponse",
    "TableListResponse",
    "ColumnListResponse",
    "TableDefinitionResponse",
    "CountResponse",
    "TablePage",
    "MutationResult",
    "DeleteResult",
    "LinkResolution",
    "RelatedOption",
    "RelatedOptionsResponse",
]
