"""
Database client for PostgreSQL using asyncpg.

This module provides an async database client with connection pooling,
parameterized query execution and translation of driver errors into the
table browser's exception hierarchy.
"""

import asyncio
from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager
import asyncpg

from ..config import DatabaseConfig
from ..utils.logging import get_module_logger
from ..domain.errors import (
    TableBrowserException,
    ConnectivityError,
    ConstraintError,
    DatabaseQueryError,
)


logger = get_module_logger()

# SQLSTATE classes (first two characters) that mean the database rejected the data
# 22: data exception (invalid text representation, value out of range, ...)
# 23: integrity constraint violation (not null, foreign key, unique, check)
REJECTED_WRITE_SQLSTATE_CLASSES = ("22", "23")

# 08: connection exception, 28: invalid authorization, 57P0x: server shutting down
CONNECTIVITY_SQLSTATE_PREFIXES = ("08", "28", "57P01", "57P02", "57P03")

LOGGED_QUERY_CHARS = 200


def translate_error(error: Exception) -> TableBrowserException:
    """
    Map a driver exception to the table browser exception hierarchy.

    Args:
        error: Exception raised by asyncpg or the event loop

    Returns:
        ConstraintError, ConnectivityError or DatabaseQueryError
        (TableBrowserException instances are returned unchanged).
        Statement text never goes into the result; callers log it.
    """
    if isinstance(error, TableBrowserException):
        return error

    if isinstance(error, asyncpg.PostgresError):
        sqlstate = getattr(error, "sqlstate", None) or ""
        details: Dict[str, Any] = {"sqlstate": sqlstate}
        constraint_name = getattr(error, "constraint_name", None)
        if constraint_name:
            details["constraint"] = constraint_name

        if sqlstate[:2] in REJECTED_WRITE_SQLSTATE_CLASSES:
            return ConstraintError(str(error), details=details)

        if sqlstate.startswith(CONNECTIVITY_SQLSTATE_PREFIXES):
            return ConnectivityError(f"Database connection failed: {error}", details=details)

        if isinstance(error, asyncpg.QueryCanceledError):
            return DatabaseQueryError(f"Query timeout exceeded: {error}", details=details)

        if isinstance(error, asyncpg.UndefinedTableError):
            return DatabaseQueryError(f"Table does not exist: {error}", details=details)

        if isinstance(error, asyncpg.UndefinedColumnError):
            return DatabaseQueryError(f"Column does not exist: {error}", details=details)

        if isinstance(error, asyncpg.InvalidSchemaNameError):
            return DatabaseQueryError(f"Invalid schema name: {error}", details=details)

        if isinstance(error, asyncpg.PostgresSyntaxError):
            return DatabaseQueryError(f"SQL syntax error: {error}", details=details)

        return DatabaseQueryError(f"Query execution failed: {error}", details=details)

    # Client-side argument encoding errors (asyncpg DataError is a ValueError)
    if isinstance(error, (ValueError, TypeError)):
        return ConstraintError(f"Invalid value for column type: {error}")

    if isinstance(error, (asyncpg.InterfaceError, OSError, asyncio.TimeoutError)):
        return ConnectivityError(f"Database connection failed: {error}")

    return DatabaseQueryError(f"Query execution failed: {error}")


class DatabaseClient:
    """
    Async PostgreSQL client over an asyncpg pool.

    Runs the statements it is given with bound $n parameters and nothing
    else: catalog queries and statement building belong to the repositories.
    Every driver failure leaves this class as a ConstraintError,
    ConnectivityError or DatabaseQueryError (see translate_error).

    Usage:
        client = DatabaseClient(settings.database)
        await client.connect()

        rows = await client.execute_query(
            'SELECT * FROM "public"."users" WHERE "id" = $1',
            params=[user_id]
        )
        total = await client.execute_scalar('SELECT COUNT(*) FROM "public"."users"')

        await client.close()
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None

        logger.debug(
            "DatabaseClient created",
            pool_max_size=config.connection_pool_max_size,
            query_timeout_seconds=config.query_timeout_seconds,
            application_name=config.application_name
        )

    def _pool_options(self) -> Dict[str, Any]:
        return {
            "dsn": self.config.database_url,
            "min_size": self.config.connection_pool_min_size,
            "max_size": self.config.connection_pool_max_size,
            "command_timeout": self.config.query_timeout_seconds,
            "timeout": self.config.connection_timeout_seconds,
            "max_queries": self.config.connection_pool_max_queries,
            "max_cached_statement_lifetime": self.config.max_cached_statement_lifetime,
            "max_cacheable_statement_size": self.config.max_cacheable_statement_size,
            "server_settings": {
                "application_name": self.config.application_name,
                "search_path": self.config.default_schema,
                "jit": "on" if self.config.jit_enabled else "off",
            },
        }

    async def connect(self) -> None:
        """
        Open the pool and check it with a round trip.

        Calling connect on a connected client does nothing.

        Raises:
            ConnectivityError: If the pool cannot be opened or the check fails
                (unknown database, bad credentials, unreachable host)
        """
        if self.is_connected():
            logger.warning("Database client already connected")
            return

        logger.info("Opening database pool", application_name=self.config.application_name)

        pool = None
        try:
            pool = await asyncpg.create_pool(**self._pool_options())
            async with pool.acquire() as conn:
                server_version = await conn.fetchval("SHOW server_version")
        except Exception as e:
            if pool is not None:
                await pool.close()
            reason = {
                asyncpg.InvalidCatalogNameError: "Database does not exist",
                asyncpg.InvalidPasswordError: "Authentication failed",
            }.get(type(e), "Failed to connect to database")
            logger.error(f"{reason}: {e}", error_type=type(e).__name__)
            raise ConnectivityError(f"{reason}: {e}") from e

        self._pool = pool
        logger.info(
            "Database pool ready",
            server_version=server_version,
            pool_min_size=self.config.connection_pool_min_size,
            pool_max_size=self.config.connection_pool_max_size
        )

    async def close(self) -> None:
        """Close the pool; safe to call when it was never opened."""
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            logger.info("Database pool closed")

    def is_connected(self) -> bool:
        return self._pool is not None

    async def health_check(self) -> Dict[str, Any]:
        """
        Report database reachability without raising.

        Example:
            {"status": "healthy", "connected": True, "pool_size": 5, "current_database": "app"}
            {"status": "unhealthy", "connected": False, "error": "Database client not connected"}
        """
        if not self.is_connected():
            return {"status": "unhealthy", "connected": False, "error": "Database client not connected"}

        try:
            current_database = await self.execute_scalar("SELECT current_database()")
        except TableBrowserException as e:
            logger.warning("Database health check failed", error=e.message, error_code=e.error_code)
            return {"status": "unhealthy", "connected": True, "error": e.message}

        return {
            "status": "healthy",
            "connected": True,
            "pool_size": self._pool.get_size() if self._pool is not None else 0,
            "current_database": current_database
        }

    @asynccontextmanager
    async def acquire_connection(self):
        """
        Borrow a connection from the pool for the duration of the block.

        Raises:
            ConnectivityError: If the pool is not open
        """
        if self._pool is None:
            raise ConnectivityError("Database client is not connected")

        async with self._pool.acquire() as connection:
            yield connection

    async def _run(self, method: str, query: str, params: Optional[List[Any]], timeout: Optional[float]) -> Any:
        """Call one asyncpg fetch method; driver errors leave as translated exceptions."""
        args = params or []
        logger.debug(
            "Executing statement",
            fetch=method,
            query=query[:LOGGED_QUERY_CHARS],
            param_count=len(args)
        )

        try:
            async with self.acquire_connection() as conn:
                return await getattr(conn, method)(query, *args, timeout=timeout)
        except Exception as e:
            translated = translate_error(e)
            logger.error(
                translated.message,
                error_code=translated.error_code,
                error_type=type(e).__name__
            )
            if translated is e:
                raise
            raise translated from e

    async def execute_query(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute a SQL statement and return result rows as dictionaries.

        Args:
            query: SQL text with $n placeholders
            params: Values for the placeholders, in order
            timeout: Per-statement timeout in seconds (defaults to the pool command_timeout)

        Returns:
            One dictionary per row, keys in column order

        Raises:
            ConnectivityError: If the database cannot be reached
            ConstraintError: If the database rejects the data
            DatabaseQueryError: For any other statement failure
        """
        rows = await self._run("fetch", query, params, timeout)
        return [dict(row) for row in rows]

    async def execute_one(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """First row of the statement's result, or None if it returned no rows."""
        row = await self._run("fetchrow", query, params, timeout)
        return dict(row) if row is not None else None

    async def execute_scalar(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """First column of the first row."""
        return await self._run("fetchval", query, params, timeout)
