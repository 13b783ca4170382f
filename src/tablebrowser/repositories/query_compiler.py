"""
Filter/Sort Compiler.

Turns the caller's optional sort and filter specs into ORDER BY and WHERE
fragments for a single table. Both fragments are built from the table's
introspected columns:

- Column names are checked against the catalog and emitted through
  quote_identifier(); a column the table does not have is rejected.
- Operators and sort directions are parsed into closed enums; anything
  else is rejected (fails closed, never "no filter").
- Values are bound through QueryParams after conversion to the column type.

Usage:
    params = QueryParams()
    where = compile_where(filter_spec, columns, params, case_insensitive=True)
    order_by = compile_order_by(sort_spec, columns)
    sql = f"SELECT * FROM {qualified_name(schema, table)} {where} {order_by}"

The same compile_where() output feeds both COUNT and the page query, so the
displayed total always matches the rows being paged.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config_constants import CONVENTIONAL_ROW_KEY
from ..domain.base_enums import OperatorKind, SortDirection, PATTERN_OPERATORS
from ..domain.catalog import ColumnDescriptor
from ..domain.errors import ValidationError
from ..domain.requests import FilterSpec, SortSpec
from ..utils.sql_quoting import LIKE_ESCAPE_CHAR, QueryParams, escape_like_pattern, quote_identifier
from ..utils.value_coercion import coerce_text, has_known_binding


COMPARISON_SQL = {
    OperatorKind.EQUALS: "=",
    OperatorKind.NOT_EQUALS: "!=",
    OperatorKind.GREATER_THAN: ">",
    OperatorKind.GREATER_OR_EQUAL: ">=",
    OperatorKind.LESS_THAN: "<",
    OperatorKind.LESS_OR_EQUAL: "<=",
}

# Wildcards are added after escaping, so only these are live
PATTERN_SHAPES = {
    OperatorKind.CONTAINS: "%{}%",
    OperatorKind.STARTS_WITH: "{}%",
    OperatorKind.ENDS_WITH: "%{}",
}

DIRECTION_SQL = {
    SortDirection.ASCENDING: "ASC",
    SortDirection.DESCENDING: "DESC",
}

# Physical row id, used when a table has neither a primary key nor an id column
PHYSICAL_ORDER = "ctid"


def parse_operator(raw: Any) -> OperatorKind:
    """
    Parse a caller-supplied operator name.

    Raises:
        ValidationError: If the name is not one of the supported operators
    """
    try:
        return OperatorKind(str(raw).strip().lower())
    except ValueError as e:
        raise ValidationError(
            f"Unknown filter operator: {raw!r}",
            details={
                "operator": str(raw),
                "supported_operators": [op.value for op in OperatorKind],
            }
        ) from e


def parse_direction(raw: Any) -> SortDirection:
    """
    Parse a caller-supplied sort direction ('asc'/'desc', case-insensitive).

    Raises:
        ValidationError: If the direction is anything else
    """
    try:
        return SortDirection(str(raw).strip().lower())
    except ValueError as e:
        raise ValidationError(
            f"Unknown sort direction: {raw!r}",
            details={"direction": str(raw), "supported_directions": [d.value for d in SortDirection]}
        ) from e


def index_columns(columns: Sequence[ColumnDescriptor]) -> Dict[str, ColumnDescriptor]:
    return {column.name: column for column in columns}


def require_column(name: str, columns: Dict[str, ColumnDescriptor]) -> ColumnDescriptor:
    """Look up a caller-named column among the introspected ones."""
    column = columns.get(name)
    if column is None:
        raise ValidationError(
            f"Unknown column: {name!r}",
            details={"column": name, "available_columns": list(columns)}
        )
    return column


def order_key_columns(columns: Sequence[ColumnDescriptor]) -> List[str]:
    """
    Columns that identify a row for ordering purposes.

    Primary key columns in catalog order; failing that, a column named 'id';
    failing that, nothing (callers fall back to ctid).
    """
    key_columns = [column.name for column in columns if column.is_primary_key]
    if key_columns:
        return key_columns
    if any(column.name == CONVENTIONAL_ROW_KEY for column in columns):
        return [CONVENTIONAL_ROW_KEY]
    return []


def resolve_row_key(columns: Sequence[ColumnDescriptor]) -> ColumnDescriptor:
    """
    Pick the column that addresses a single row for update and delete.

    Raises:
        ValidationError: If the primary key is composite, or the table has
            no primary key and no column named 'id'
    """
    key_columns = [column for column in columns if column.is_primary_key]

    if len(key_columns) > 1:
        raise ValidationError(
            "Tables with a composite primary key cannot be edited",
            details={"primary_key": [column.name for column in key_columns]}
        )

    if key_columns:
        return key_columns[0]

    for column in columns:
        if column.name == CONVENTIONAL_ROW_KEY:
            return column

    raise ValidationError(
        f"Table has no primary key and no '{CONVENTIONAL_ROW_KEY}' column",
        details={"columns": [column.name for column in columns]}
    )


def compile_order_by(sort: Optional[SortSpec], columns: Sequence[ColumnDescriptor]) -> str:
    """
    Build the ORDER BY clause.

    With a sort, the sort column comes first and the row key columns follow
    as tiebreakers, so paging over repeated values never skips or repeats
    rows. Without one, rows are ordered by key descending (newest first for
    serial keys), or by ctid when the table has no key.

    Raises:
        ValidationError: On an unknown direction or column
    """
    key_columns = order_key_columns(columns)

    if sort is None:
        if not key_columns:
            return f"ORDER BY {PHYSICAL_ORDER}"
        return "ORDER BY " + ", ".join(f"{quote_identifier(name)} DESC" for name in key_columns)

    direction = DIRECTION_SQL[parse_direction(sort.direction)]
    column = require_column(sort.column, index_columns(columns))

    terms = [f"{quote_identifier(column.name)} {direction}"]
    tiebreakers = [name for name in key_columns if name != column.name]
    if tiebreakers:
        terms.extend(f"{quote_identifier(name)} {direction}" for name in tiebreakers)
    elif not key_columns:
        terms.append(PHYSICAL_ORDER)

    return "ORDER BY " + ", ".join(terms)


def pattern_keyword(case_insensitive: bool) -> str:
    return "ILIKE" if case_insensitive else "LIKE"


def compile_where(
    filter_spec: Optional[FilterSpec],
    columns: Sequence[ColumnDescriptor],
    params: QueryParams,
    case_insensitive: bool = True,
) -> str:
    """
    Build the WHERE clause for at most one filter.

    Args:
        filter_spec: Active filter, or None for no restriction
        columns: Introspected columns of the table
        params: Parameter collector of the statement being built
        case_insensitive: ILIKE (True) or LIKE (False) for pattern operators

    Returns:
        "" when there is no filter, otherwise "WHERE ..." with the value bound

    Raises:
        ValidationError: On an unknown operator or column, or a value that is
            not a valid literal of the column type
    """
    if filter_spec is None:
        return ""

    operator = parse_operator(filter_spec.operator)
    column = require_column(filter_spec.column, index_columns(columns))
    target = quote_identifier(column.name)

    if operator in PATTERN_OPERATORS:
        pattern = PATTERN_SHAPES[operator].format(escape_like_pattern(filter_spec.value))
        return (
            f"WHERE {target}::text {pattern_keyword(case_insensitive)} {params.bind(pattern)} "
            f"ESCAPE '{LIKE_ESCAPE_CHAR}'"
        )

    comparison = COMPARISON_SQL[operator]

    if has_known_binding(column.declared_type):
        value = coerce_text(filter_spec.value, column)
    else:
        # No Python type for this column: let PostgreSQL render it as text
        target = f"{target}::text"
        value = filter_spec.value

    return f"WHERE {target} {comparison} {params.bind(value)}"


# OFFSET is bound as bigint
MAX_OFFSET = 2 ** 63 - 1


def _to_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def normalize_pagination(
    page: Any,
    page_size: Any,
    default_page_size: int,
    max_page_size: int,
) -> Tuple[int, int]:
    """
    Normalize raw page/page_size values.

    Non-positive or non-numeric page becomes 1. Non-positive or non-numeric
    page_size becomes the default; anything above the maximum is capped.
    A page whose OFFSET would not fit in a bigint is lowered to the last
    page that does.

    Returns:
        (page, page_size)
    """
    page_number = _to_int(page)
    if page_number is None or page_number < 1:
        page_number = 1

    size = _to_int(page_size)
    if size is None or size < 1:
        size = default_page_size
    size = min(size, max_page_size)

    page_number = min(page_number, MAX_OFFSET // size + 1)

    return page_number, size
