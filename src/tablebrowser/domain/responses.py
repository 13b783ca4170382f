"""
Response models for the table browser.

These models define the structure of every result handed to the
presentation layer, ensuring consistent formats and type safety.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from .catalog import ColumnDescriptor
from .requests import FilterSpec, SortSpec

# Models carrying row values; bytea cells go out as base64 text
ROW_MODEL_CONFIG = ConfigDict(ser_json_bytes="base64")


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status", examples=["healthy", "unhealthy"])
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    database_status: str = Field(..., description="Database connection status")


class ErrorResponse(BaseModel):
    """Response model for error responses."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
    trace_id: Optional[str] = Field(
        default=None,
        description="Trace ID for debugging"
    )
    timestamp: datetime = Field(..., description="Error timestamp")


class SchemaListResponse(BaseModel):
    schemas: List[str] = Field(..., description="User schemas, system schemas excluded")


class TableListResponse(BaseModel):
    schema_name: str = Field(..., description="Schema the tables belong to")
    tables: List[str] = Field(..., description="Base tables (views excluded), ordered by name")


class ColumnListResponse(BaseModel):
    schema_name: str = Field(..., description="Schema the table belongs to")
    table_name: str = Field(..., description="Table the columns belong to")
    columns: List[ColumnDescriptor] = Field(..., description="Columns in ordinal order")


class TableDefinitionResponse(BaseModel):
    schema_name: str = Field(..., description="Schema the table belongs to")
    table_name: str = Field(..., description="Table name")
    definition: str = Field(..., description="CREATE TABLE rendering; empty when the database could not produce one")


class CountResponse(BaseModel):
    total_records: int = Field(..., description="Rows matching the filter")


class TablePage(BaseModel):
    """One page of rows plus the metadata needed to render it."""

    model_config = ROW_MODEL_CONFIG

    schema_name: str = Field(..., description="Schema the table belongs to")
    table_name: str = Field(..., description="Table name")
    columns: List[ColumnDescriptor] = Field(..., description="Columns in ordinal order")
    rows: List[Dict[str, Any]] = Field(..., description="Rows of this page, in display order")
    total_records: int = Field(..., description="Rows matching the filter across all pages")
    page: int = Field(..., description="1-based page number after normalization")
    page_size: int = Field(..., description="Page size after normalization")
    sort: Optional[SortSpec] = Field(default=None, description="Active sort, if any")
    filter: Optional[FilterSpec] = Field(default=None, description="Active filter, if any")


class MutationResult(BaseModel):
    """
    Result of an insert or update.

    Mutations never raise to their caller: failures come back with
    success=False and the database-provided message in `error`.
    """

    model_config = ROW_MODEL_CONFIG

    success: bool = Field(..., description="Whether the write was applied")
    data: Optional[Dict[str, Any]] = Field(default=None, description="The row as stored (RETURNING *)")
    error: Optional[str] = Field(default=None, description="Failure message (if success=False)")
    error_code: Optional[str] = Field(default=None, description="Machine-readable failure code (if success=False)")


class DeleteResult(BaseModel):
    success: bool = Field(..., description="Whether the delete statement ran")
    deleted_count: int = Field(default=0, description="Number of rows removed")
    error: Optional[str] = Field(default=None, description="Failure message (if success=False)")
    error_code: Optional[str] = Field(default=None, description="Machine-readable failure code (if success=False)")


class LinkResolution(BaseModel):
    """
    Outcome of following a foreign key from one cell.

    is_link=False means the column has no single-column foreign key; the
    caller should not offer a drill-in.
    """

    model_config = ROW_MODEL_CONFIG

    is_link: bool = Field(..., description="Whether the column references another table")
    target_schema: Optional[str] = Field(default=None, description="Referenced schema")
    target_table: Optional[str] = Field(default=None, description="Referenced table")
    target_column: Optional[str] = Field(default=None, description="Referenced column")
    row: Optional[Dict[str, Any]] = Field(default=None, description="Referenced row, None if no row matches")


class RelatedOption(BaseModel):
    model_config = ROW_MODEL_CONFIG

    value: Any = Field(..., description="Referenced column value to store")
    label: str = Field(..., description="Text to display in a picker")


class RelatedOptionsResponse(BaseModel):
    model_config = ROW_MODEL_CONFIG

    target_schema: Optional[str] = Field(default=None, description="Referenced schema")
    target_table: Optional[str] = Field(default=None, description="Referenced table")
    target_column: Optional[str] = Field(default=None, description="Referenced column")
    options: List[RelatedOption] = Field(default_factory=list, description="Distinct referenced values, capped")
