"""
Request models for the table browser.

Sort and filter specs carry raw caller strings: direction and operator are
parsed against their closed enums by the query compiler, which rejects
anything else with a ValidationError.

All fields include descriptions that appear in Swagger/OpenAPI documentation.
"""

from pydantic import BaseModel, Field
from typing import List, Union

from .types import RecordValues


class SortSpec(BaseModel):
    """Single-column sort requested by the caller."""

    column: str = Field(..., description="Column to sort by", min_length=1)
    direction: str = Field(
        default="asc",
        description="Sort direction: 'asc' or 'desc'.",
        json_schema_extra={"example": "desc"}
    )


class FilterSpec(BaseModel):
    """Single-column filter requested by the caller. Only one filter is active at a time."""

    column: str = Field(..., description="Column to filter on", min_length=1)
    operator: str = Field(
        ...,
        description="One of: eq, neq, contains, starts_with, ends_with, gt, gte, lt, lte.",
        json_schema_extra={"example": "gte"}
    )
    value: str = Field(
        ...,
        description="Filter value as text. Converted to the column type before binding; "
                    "pattern wildcards (% and _) are matched literally.",
        json_schema_extra={"example": "18"}
    )


class InsertRecordRequest(BaseModel):
    """Request body for inserting one row."""

    values: RecordValues = Field(
        default_factory=dict,
        description="Column values for the new row. Columns left out take their database default.",
        json_schema_extra={"example": {"email": "ada@example.com", "age": "36"}}
    )


class UpdateRecordRequest(BaseModel):
    """Request body for updating one row."""

    values: RecordValues = Field(
        ...,
        description="Column values to set. The row key column (normally 'id') is ignored.",
        json_schema_extra={"example": {"email": "ada@example.org"}}
    )


class DeleteRecordsRequest(BaseModel):
    """Request body for deleting rows by key."""

    ids: List[Union[int, str]] = Field(
        default_factory=list,
        description="Row keys to delete. An empty list deletes nothing.",
        json_schema_extra={"example": [1, 2, 3]}
    )
