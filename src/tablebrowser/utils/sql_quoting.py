"""
Identifier quoting and value binding for dynamically built SQL.

Every schema, table and column name that reaches SQL text goes through
quote_identifier(); every value goes through QueryParams.bind(), which
hands it to asyncpg as a positional parameter ($1, $2, ...). Identifiers
cannot be parameterized, so quote_identifier() is the single place where
caller-chosen text is embedded in a statement.

Usage:
    params = QueryParams()
    sql = (
        f"SELECT * FROM {qualified_name('public', 'users')} "
        f"WHERE {quote_identifier('email')} = {params.bind('ada@example.com')}"
    )
    rows = await db_client.execute_query(sql, params=params.values)
"""

from typing import Any, List

from ..config_constants import MAX_IDENTIFIER_BYTES
from ..domain.errors import ValidationError


LIKE_ESCAPE_CHAR = "\\"


def quote_identifier(name: str) -> str:
    """
    Quote a PostgreSQL identifier.

    The name is wrapped in double quotes and every embedded double quote is
    doubled, so the quoted region cannot be terminated early.

    Args:
        name: Schema, table or column name exactly as stored in the catalog

    Returns:
        Quoted identifier, e.g. 'user' -> '"user"', 'a"b' -> '"a""b"'

    Raises:
        ValidationError: If the name is empty, not a string, contains a NUL
            byte or is longer than PostgreSQL keeps
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(
            "Identifier must be a non-empty string",
            details={"identifier": repr(name)}
        )

    if "\x00" in name:
        raise ValidationError(
            "Identifier must not contain NUL characters",
            details={"identifier": repr(name)}
        )

    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise ValidationError(
            f"Identifier is longer than {MAX_IDENTIFIER_BYTES} bytes",
            details={"identifier": name[:80]}
        )

    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: str, table: str) -> str:
    """Quote a schema-qualified table name: "schema"."table"."""
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"


def escape_like_pattern(value: str) -> str:
    """
    Escape LIKE/ILIKE metacharacters so they match literally.

    Must be paired with ESCAPE '\\' in the statement; the compiler adds the
    surrounding % wildcards after escaping.
    """
    return (
        value.replace(LIKE_ESCAPE_CHAR, LIKE_ESCAPE_CHAR * 2)
        .replace("%", LIKE_ESCAPE_CHAR + "%")
        .replace("_", LIKE_ESCAPE_CHAR + "_")
    )


class QueryParams:
    """
    Collects the bound values of one statement.

    Each call to bind() appends a value and returns its placeholder, so the
    placeholder numbering always matches the order of `values`.
    """

    def __init__(self) -> None:
        self.values: List[Any] = []

    def bind(self, value: Any) -> str:
        """Bind a value and return its placeholder text ($n)."""
        self.values.append(value)
        return f"${len(self.values)}"

    def __len__(self) -> int:
        return len(self.values)
