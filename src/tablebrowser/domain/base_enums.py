from enum import Enum


class OperatorKind(str, Enum):
    """Filter operators; values are the wire names callers send."""
    EQUALS = "eq"
    NOT_EQUALS = "neq"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "gt"
    GREATER_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_OR_EQUAL = "lte"


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class OperatorFamily(str, Enum):
    """Operator groups offered per column type."""
    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"


class MutationKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


PATTERN_OPERATORS = frozenset({
    OperatorKind.CONTAINS,
    OperatorKind.STARTS_WITH,
    OperatorKind.ENDS_WITH,
})

OPERATORS_BY_FAMILY = {
    OperatorFamily.TEXT: (
        OperatorKind.EQUALS,
        OperatorKind.NOT_EQUALS,
        OperatorKind.CONTAINS,
        OperatorKind.STARTS_WITH,
        OperatorKind.ENDS_WITH,
    ),
    OperatorFamily.NUMERIC: (
        OperatorKind.EQUALS,
        OperatorKind.NOT_EQUALS,
        OperatorKind.GREATER_THAN,
        OperatorKind.GREATER_OR_EQUAL,
        OperatorKind.LESS_THAN,
        OperatorKind.LESS_OR_EQUAL,
    ),
    OperatorFamily.BOOLEAN: (
        OperatorKind.EQUALS,
        OperatorKind.NOT_EQUALS,
    ),
}
