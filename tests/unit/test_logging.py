from tablebrowser.utils.logging import configure_logging, get_logger, get_module_logger
from tablebrowser.utils.tracing import current_trace_id, generate_trace_id, set_trace_id, get_trace_id, trace_scope


def test_logger_configuration():
    configure_logging()
    logger = get_logger("test")
    assert logger is not None


def test_module_logger():
    configure_logging()
    logger = get_module_logger()
    assert logger is not None


def test_trace_id_generation():
    trace_id = generate_trace_id()
    assert len(trace_id) == 36  # UUID format
    assert '-' in trace_id


def test_trace_id_context():
    test_id = "test-trace-123"
    set_trace_id(test_id)
    assert current_trace_id() == test_id
    assert get_trace_id() == test_id


def test_trace_scope_restores_previous_id():
    set_trace_id("outer")
    with trace_scope("inner") as trace_id:
        assert trace_id == "inner"
        assert current_trace_id() == "inner"
    assert current_trace_id() == "outer"


def test_trace_scope_generates_id_when_missing():
    with trace_scope() as trace_id:
        assert len(trace_id) == 36
        assert current_trace_id() == trace_id


def test_trace_id_processor_uses_current_scope():
    from tablebrowser.utils.logging import _add_trace_id

    with trace_scope("scoped-id"):
        event = _add_trace_id(None, "info", {"event": "Page fetched"})
    assert event["trace_id"] == "scoped-id"


def test_trace_id_processor_keeps_explicit_value():
    from tablebrowser.utils.logging import _add_trace_id

    with trace_scope("scoped-id"):
        event = _add_trace_id(None, "info", {"event": "x", "trace_id": "explicit"})
    assert event["trace_id"] == "explicit"


def test_module_info_shortens_project_loggers():
    from tablebrowser.utils.logging import _add_module_info

    event = _add_module_info(None, "info", {"logger": "tablebrowser.repositories.record_repository"})
    assert event["module"] == "repositories.record_repository"

    event = _add_module_info(None, "info", {"logger": "uvicorn.error"})
    assert event["module"] == "uvicorn.error"


def test_long_field_values_are_truncated():
    from tablebrowser.utils.logging import MAX_FIELD_LENGTH, _truncate_long_values

    event = _truncate_long_values(None, "info", {
        "event": "Insert failed",
        "values": {"body": "x" * (MAX_FIELD_LENGTH * 2)},
        "row_count": 3,
    })
    assert len(event["values"]) < MAX_FIELD_LENGTH + 30
    assert event["values"].endswith("chars)")
    assert event["row_count"] == 3
