from pydantic import BaseModel, ConfigDict, Field, computed_field
from .base_enums import OperatorFamily, OperatorKind, OPERATORS_BY_FAMILY
from typing import List, Optional


NUMERIC_TYPES = frozenset({
    "smallint",
    "integer",
    "bigint",
    "numeric",
    "decimal",
    "real",
    "double precision",
})


def operator_family(declared_type: str) -> OperatorFamily:
    """Pick the operator group a caller should offer for a column of this type."""
    if declared_type == "boolean":
        return OperatorFamily.BOOLEAN
    if declared_type in NUMERIC_TYPES:
        return OperatorFamily.NUMERIC
    return OperatorFamily.TEXT


class ColumnDescriptor(BaseModel):
    """Represents one column of a table as read from the catalog."""

    model_config = ConfigDict(frozen=True)

    name : str = Field(..., description="Name of the column")
    declared_type : str = Field(..., description="Lowercased catalog data type, e.g. 'integer', 'text', 'timestamp without time zone'")
    nullable : bool = Field(default=True, description="Indicates if the column can contain null values")
    default_expr : Optional[str] = Field(default=None, description="Column default expression as stored in the catalog")
    is_primary_key : bool = Field(default=False, description="Indicates if the column is part of the primary key")
    ordinal_position : int = Field(default=0, description="1-based catalog position; columns are listed in this order")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def allowed_operators(self) -> List[OperatorKind]:
        return list(OPERATORS_BY_FAMILY[operator_family(self.declared_type)])


class ForeignKeyDescriptor(BaseModel):
    """Represents a single-column foreign key constraint."""

    model_config = ConfigDict(frozen=True)

    constraint_name : str = Field(..., description="Name of the foreign key constraint")
    source_schema : str = Field(..., description="Schema of the referencing table")
    source_table : str = Field(..., description="Referencing table")
    source_column : str = Field(..., description="Referencing column")
    target_schema : str = Field(..., description="Schema of the referenced table")
    target_table : str = Field(..., description="Referenced table")
    target_column : str = Field(..., description="Referenced column")
