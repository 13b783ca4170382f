import structlog
import logging
import inspect
import json
import sys
from typing import Any, Callable
from tablebrowser.config import get_settings
from tablebrowser.utils.tracing import current_trace_id

# Module-level flag to prevent multiple configuration
_logging_configured = False

PROJECT_LOGGER_PREFIX = "tablebrowser."

# Row payloads and cell values end up in log fields; keep lines readable
MAX_FIELD_LENGTH = 500

_RESERVED_FIELDS = frozenset({"event", "timestamp", "level", "logger", "module", "exception", "trace_id"})


def _add_trace_id(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """Attach the request trace ID unless the call site passed one explicitly."""
    if event_dict.get("trace_id") is None:
        trace_id = current_trace_id()
        if trace_id is not None:
            event_dict["trace_id"] = trace_id
        else:
            event_dict.pop("trace_id", None)
    return event_dict


def _add_module_info(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """
    Shorten project logger names to the layer and module,
    e.g. "tablebrowser.repositories.record_repository" -> "repositories.record_repository".
    """
    logger_name = event_dict.get("logger", "unknown")
    if logger_name.startswith(PROJECT_LOGGER_PREFIX):
        logger_name = ".".join(logger_name.split(".")[-2:])
    event_dict["module"] = logger_name
    return event_dict


def _truncate_long_values(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """Cut oversized field values (long text cells, large id lists) to MAX_FIELD_LENGTH characters."""
    for key, value in event_dict.items():
        if key in _RESERVED_FIELDS or isinstance(value, (bool, int, float)) or value is None:
            continue
        text = value if isinstance(value, str) else repr(value)
        if len(text) > MAX_FIELD_LENGTH:
            event_dict[key] = f"{text[:MAX_FIELD_LENGTH]}... ({len(text)} chars)"
    return event_dict


def _pretty_json_renderer(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """Indented JSON; Decimal, UUID and datetime values fall back to str()."""
    return json.dumps(event_dict, indent=2, ensure_ascii=False, default=str)


def _select_renderer(log_format: str) -> Callable[..., Any]:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return _pretty_json_renderer


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Idempotent: the API configures logging at import time and the dev
    scripts may call it again before handing over to uvicorn.
    """
    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.app.log_level.value),
        handlers=[logging.StreamHandler()]
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _add_trace_id,
            _add_module_info,
            _truncate_long_values,
            _select_renderer(settings.app.log_format),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("Page fetched", schema="public", table="users", row_count=100)

        # {
        #   "event": "Page fetched",
        #   "schema": "public",
        #   "table": "users",
        #   "row_count": 100,
        #   "logger": "tablebrowser.repositories.record_repository",
        #   "level": "info",
        #   "timestamp": "2024-01-22T10:30:00Z",
        #   "trace_id": "550e8400-e29b-41d4-a716-446655440000",
        #   "module": "repositories.record_repository"
        # }
    """
    return structlog.get_logger(name)


def get_module_logger() -> structlog.stdlib.BoundLogger:
    """Logger named after the calling module ('unknown' if the frame is unavailable)."""
    frame = inspect.currentframe()
    try:
        caller = frame.f_back if frame is not None else None
        module_name = caller.f_globals.get("__name__", "unknown") if caller is not None else "unknown"
    finally:
        del frame

    return get_logger(module_name)
