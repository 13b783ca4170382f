"""
Custom exception hierarchy for the table browser.

This module defines the exception hierarchy with:
- Consistent error codes for API responses and mutation results
- HTTP status code mappings for FastAPI
- Detailed error messages for debugging

Exception Categories:
- 4xx Client Errors: ValidationError, NotFoundError, ConstraintError
- 5xx Server Errors: ConnectivityError, DatabaseQueryError, ConfigurationError

Usage:
    raise ValidationError("Unknown filter operator", details={"operator": "like"})
    raise ConstraintError("duplicate key value violates unique constraint", details={"sqlstate": "23505"})
"""

from typing import Any, Dict, Optional


class TableBrowserException(Exception):
    """
    Base exception for all table browser errors.

    All custom exceptions inherit from this class, providing:
    - error_code: Machine-readable error identifier
    - http_status: Suggested HTTP status code for API responses
    - details: Optional structured data for debugging

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "CONSTRAINT_ERROR")
        http_status: HTTP status code to return (default: 500)
        details: Optional dictionary with additional error context
    """

    error_code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        if http_status:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Client Errors (4xx)
# =============================================================================


class ValidationError(TableBrowserException):
    """
    Raised when caller input cannot be turned into safe SQL.

    HTTP Status: 422 Unprocessable Entity

    Examples:
        - Empty identifier or identifier with a NUL byte
        - Unknown filter operator or sort direction
        - Filter/sort column that is not a column of the table
        - Filter value that cannot be read as the column's type
        - Table with a composite primary key
    """

    error_code = "VALIDATION_ERROR"
    http_status = 422


class NotFoundError(TableBrowserException):
    """
    Raised when a requested resource is not found.

    HTTP Status: 404 Not Found

    Examples:
        - Table that does not exist or is not visible
        - Update targeting a row id that does not exist
    """

    error_code = "NOT_FOUND"
    http_status = 404


# =============================================================================
# Configuration Errors (5xx)
# =============================================================================


class ConfigurationError(TableBrowserException):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "CONFIGURATION_ERROR"
    http_status = 500


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(TableBrowserException):
    """
    Base class for database-related errors.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "DATABASE_ERROR"
    http_status = 503


class ConnectivityError(DatabaseError):
    """
    Raised when the database cannot be reached.

    HTTP Status: 503 Service Unavailable

    Examples:
        - Connection timeout
        - Authentication failure
        - Pool not connected
    """

    error_code = "CONNECTIVITY_ERROR"
    http_status = 503


class ConstraintError(DatabaseError):
    """
    Raised when the database rejects a write.

    The message is the database-provided message; writes are never retried.

    HTTP Status: 409 Conflict

    Examples:
        - Unique, foreign key or not-null violation
        - Invalid input for the column type
    """

    error_code = "CONSTRAINT_ERROR"
    http_status = 409


class DatabaseQueryError(DatabaseError):
    """
    Raised when database query execution fails for any other reason.

    HTTP Status: 500 Internal Server Error

    Examples:
        - Table/column not found
        - Query timeout
    """

    error_code = "DATABASE_QUERY_ERROR"
    http_status = 500


# Mutation results carry only the error code; the API maps it back to a status
HTTP_STATUS_BY_ERROR_CODE = {
    cls.error_code: cls.http_status
    for cls in (
        ValidationError,
        NotFoundError,
        ConfigurationError,
        DatabaseError,
        ConnectivityError,
        ConstraintError,
        DatabaseQueryError,
    )
}


def http_status_for(error_code: Optional[str]) -> int:
    return HTTP_STATUS_BY_ERROR_CODE.get(error_code or "", TableBrowserException.http_status)
