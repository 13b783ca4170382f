"""
Conversion between caller-supplied text and column types.

asyncpg binds parameters with the type PostgreSQL infers for them, so the
string "18" cannot be compared with an integer column until it is turned
into an int. Filter values, row keys and form values arrive as text; this
module converts them using the column's declared type from the catalog.

Types without a known conversion are left as text; the query compiler
compares those columns as text (col::text).
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping, Optional

from ..domain.catalog import ColumnDescriptor
from ..domain.errors import ValidationError
from ..domain.types import DatabaseValue, RawRow, RecordValues


TEXT_TYPES = frozenset({
    "text",
    "character varying",
    "character",
    "name",
    "jsonb",
})

TRUE_LITERALS = frozenset({"true", "t", "yes", "y", "on", "1"})
FALSE_LITERALS = frozenset({"false", "f", "no", "n", "off", "0"})


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in TRUE_LITERALS:
        return True
    if lowered in FALSE_LITERALS:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_decimal(raw: str) -> Decimal:
    try:
        return Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"not a number: {raw!r}") from e


def _parse_timestamp(raw: str) -> datetime:
    # PostgreSQL ignores a zone given for timestamp without time zone
    return datetime.fromisoformat(raw.strip()).replace(tzinfo=None)


def _parse_timestamptz(raw: str) -> datetime:
    value = datetime.fromisoformat(raw.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


PARSERS: Dict[str, Callable[[str], Any]] = {
    "smallint": lambda raw: int(raw.strip()),
    "integer": lambda raw: int(raw.strip()),
    "bigint": lambda raw: int(raw.strip()),
    "numeric": _parse_decimal,
    "decimal": _parse_decimal,
    "real": lambda raw: float(raw.strip()),
    "double precision": lambda raw: float(raw.strip()),
    "boolean": _parse_bool,
    "uuid": lambda raw: uuid.UUID(raw.strip()),
    "date": lambda raw: date.fromisoformat(raw.strip()),
    "time without time zone": lambda raw: time.fromisoformat(raw.strip()),
    "timestamp without time zone": _parse_timestamp,
    "timestamp with time zone": _parse_timestamptz,
}


def is_text_type(declared_type: str) -> bool:
    return declared_type in TEXT_TYPES


def has_known_binding(declared_type: str) -> bool:
    """True if values for this type can be bound without casting the column to text."""
    return declared_type in PARSERS or declared_type in TEXT_TYPES


def coerce_text(raw: str, column: ColumnDescriptor) -> Any:
    """
    Convert a text value to the Python type asyncpg expects for a column.

    Args:
        raw: Text as sent by the caller
        column: Target column descriptor

    Returns:
        Converted value; the text unchanged for text and unknown types

    Raises:
        ValidationError: If the text is not a valid literal of the column type
    """
    parser = PARSERS.get(column.declared_type)
    if parser is None:
        return raw

    try:
        return parser(raw)
    except (ValueError, TypeError) as e:
        raise ValidationError(
            f"Value {raw!r} is not a valid {column.declared_type} for column '{column.name}'",
            details={"column": column.name, "declared_type": column.declared_type}
        ) from e


def coerce_value(value: Any, column: Optional[ColumnDescriptor]) -> Any:
    """
    Convert one write/key value for binding.

    Only strings are converted; already-typed values (numbers, booleans,
    None) pass through. An empty string for a non-text column means NULL,
    since forms cannot send "no value" any other way.
    """
    if column is None or value is None:
        return value

    if not isinstance(value, str):
        # JSON numbers sent for text keys and columns
        if is_text_type(column.declared_type) and isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value

    if value == "" and column.declared_type in PARSERS:
        return None

    return coerce_text(value, column)


def coerce_record(values: RecordValues, columns: Mapping[str, ColumnDescriptor]) -> Dict[str, Any]:
    """Convert every value of an insert/update payload; unknown columns pass through untouched."""
    return {name: coerce_value(value, columns.get(name)) for name, value in values.items()}


# Values handed to pydantic unchanged when rows are serialized
JSON_SERIALIZABLE_TYPES = (str, bool, int, float, Decimal, datetime, date, time, timedelta, uuid.UUID, bytes)


def normalize_value(value: Any) -> DatabaseValue:
    """
    Reduce a driver value to a DatabaseValue.

    Scalars pydantic can serialize (numbers, text, dates and times, UUID,
    bytea, intervals) are kept as they are. Arrays and mappings are kept
    with their elements normalized. Anything else (ranges, geometric types,
    records) becomes its string form.
    """
    if value is None or isinstance(value, JSON_SERIALIZABLE_TYPES):
        return value
    if isinstance(value, list):
        return [normalize_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): normalize_value(item) for key, item in value.items()}
    return str(value)


def normalize_row(row: RawRow) -> Dict[str, DatabaseValue]:
    return {key: normalize_value(value) for key, value in row.items()}
