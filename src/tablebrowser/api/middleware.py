"""
Middleware and exception handlers for the table browser FastAPI application.

Every error leaves the API as the same ErrorResponse body:

    {
        "error": "not_found",
        "message": "Table 'public.missing' not found",
        "details": {"schema": "public", "table": "missing"},
        "trace_id": "550e8400-e29b-41d4-a716-446655440000",
        "timestamp": "2024-01-15T10:30:00Z"
    }

TableBrowserException subclasses carry their own status and code. Request
validation errors, framework HTTP errors, stray ValueErrors and anything
unhandled are mapped here. Messages come from the exception, never from SQL
text; unhandled errors get a generic message.
"""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id, trace_scope
from ..domain.responses import ErrorResponse
from ..domain.errors import TableBrowserException

logger = get_module_logger()

TRACE_HEADER = "X-Trace-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

GENERIC_ERROR_MESSAGE = "An internal server error occurred. Please try again later."


# =============================================================================
# Middleware Functions
# =============================================================================


async def trace_id_middleware(request: Request, call_next: Callable) -> Response:
    """Bind X-Trace-ID (or a fresh UUID) for this request and echo it back."""
    with trace_scope(request.headers.get(TRACE_HEADER)) as trace_id:
        response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response


async def logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log each request with its status and duration; adds X-Process-Time."""
    started = datetime.now(timezone.utc)
    logger.info(
        "HTTP request started",
        method=request.method,
        path=request.url.path,
        query=request.url.query or None,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    elapsed_ms = round((datetime.now(timezone.utc) - started).total_seconds() * 1000, 2)
    response.headers[PROCESS_TIME_HEADER] = str(elapsed_ms)

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=elapsed_ms,
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_json(status_code: int, error_code: str, message: str, details: Dict | None = None) -> JSONResponse:
    body = ErrorResponse(
        error=error_code.lower(),
        message=message,
        details=details or None,
        trace_id=current_trace_id(),
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def _log_handled(request: Request, status_code: int, event: str, **fields: Any) -> None:
    """Client errors log as warnings, server errors as errors."""
    log = logger.warning if status_code < 500 else logger.error
    log(event, http_status=status_code, method=request.method, path=request.url.path, **fields)


def _http_error_code(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).name
    except ValueError:
        return "HTTP_ERROR"


async def table_browser_exception_handler(request: Request, exc: TableBrowserException) -> JSONResponse:
    _log_handled(
        request,
        exc.http_status,
        f"{type(exc).__name__}: {exc.message}",
        error_code=exc.error_code,
        details=exc.details,
    )
    return _error_json(exc.http_status, exc.error_code, exc.message, exc.details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed path, query or body (HTTP 422), one entry per offending field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    _log_handled(request, 422, "Request validation failed", errors=errors)
    return _error_json(422, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and wrong methods raised by the router."""
    error_code = _http_error_code(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code} error"
    _log_handled(request, exc.status_code, f"HTTP {exc.status_code}: {message}", error_code=error_code)
    return _error_json(exc.status_code, error_code, message)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    _log_handled(request, 400, f"ValueError: {exc}")
    return _error_json(400, "BAD_REQUEST", str(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback: full details go to the log, the client gets a generic 500."""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        path=request.url.path,
        exc_info=True,
    )
    return _error_json(500, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)


_HANDLERS = (
    (TableBrowserException, table_browser_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (ValueError, value_error_handler),
    (Exception, general_exception_handler),
)


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers, most specific exception type first."""
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, handler)  # type: ignore[arg-type]

    logger.debug("Exception handlers registered", handlers=[exc.__name__ for exc, _ in _HANDLERS])


# =============================================================================
# OpenAPI error documentation
# =============================================================================

# Used in route decorators:
#   @app.get("/schemas/{schema}/tables/{table}/rows", responses=ERROR_RESPONSES)

_EXAMPLE_TRACE_ID = "550e8400-e29b-41d4-a716-446655440000"
_EXAMPLE_TIMESTAMP = "2024-01-15T10:30:00Z"


def _error_example(description: str, error: str, message: str, details: Dict | None = None) -> Dict:
    example = {
        "error": error,
        "message": message,
        "trace_id": _EXAMPLE_TRACE_ID,
        "timestamp": _EXAMPLE_TIMESTAMP,
    }
    if details:
        example["details"] = details
    return {"description": description, "content": {"application/json": {"example": example}}}


ERROR_RESPONSES = {
    404: _error_example(
        "The table does not exist or is not visible",
        "not_found",
        "Table 'public.missing' not found",
        {"schema": "public", "table": "missing"},
    ),
    409: _error_example(
        "The database rejected the data",
        "constraint_error",
        'null value in column "email" of relation "users" violates not-null constraint',
        {"sqlstate": "23502"},
    ),
    422: _error_example(
        "Unknown column, operator or direction, or a value of the wrong type",
        "validation_error",
        "Unknown filter operator: 'like'",
        {"operator": "like"},
    ),
    500: _error_example(
        "An unexpected error occurred",
        "internal_error",
        GENERIC_ERROR_MESSAGE,
    ),
    503: _error_example(
        "The database is not reachable",
        "connectivity_error",
        "Database client is not connected",
    ),
}
