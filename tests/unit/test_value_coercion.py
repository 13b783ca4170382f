import base64
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest
from asyncpg.types import Range

from tablebrowser.domain.errors import ValidationError
from tablebrowser.domain.responses import TablePage
from tablebrowser.utils.value_coercion import (
    coerce_record,
    coerce_text,
    coerce_value,
    has_known_binding,
    normalize_row,
    normalize_value,
)

from fakes import column


class TestCoerceText:

    @pytest.mark.parametrize("declared_type,raw,expected", [
        ("integer", "18", 18),
        ("bigint", " 42 ", 42),
        ("numeric", "12.50", Decimal("12.50")),
        ("double precision", "1.5", 1.5),
        ("boolean", "true", True),
        ("boolean", "F", False),
        ("date", "2024-03-01", date(2024, 3, 1)),
        ("text", "anything", "anything"),
    ])
    def test_converts_to_column_type(self, declared_type, raw, expected):
        assert coerce_text(raw, column("c", declared_type)) == expected

    def test_uuid(self):
        value = "6f1c2f3a-5f6e-4a8b-9c0d-1e2f3a4b5c6d"
        assert coerce_text(value, column("c", "uuid")) == uuid.UUID(value)

    def test_naive_timestamptz_is_utc(self):
        value = coerce_text("2024-03-01T10:00:00", column("c", "timestamp with time zone"))
        assert value == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_timestamp_drops_zone(self):
        value = coerce_text("2024-03-01T10:00:00+02:00", column("c", "timestamp without time zone"))
        assert value.tzinfo is None

    @pytest.mark.parametrize("declared_type,raw", [
        ("integer", "abc"),
        ("integer", "1.5"),
        ("numeric", "12,5"),
        ("boolean", "maybe"),
        ("uuid", "not-a-uuid"),
        ("date", "yesterday"),
    ])
    def test_invalid_literal_raises_validation_error(self, declared_type, raw):
        with pytest.raises(ValidationError) as exc_info:
            coerce_text(raw, column("c", declared_type))
        assert exc_info.value.details["column"] == "c"

    def test_unknown_type_left_as_text(self):
        assert coerce_text("{1,2}", column("c", "array")) == "{1,2}"
        assert not has_known_binding("array")


class TestCoerceValue:

    def test_typed_values_pass_through(self):
        assert coerce_value(5, column("c", "integer")) == 5
        assert coerce_value(None, column("c", "integer")) is None

    def test_empty_string_means_null_for_typed_columns(self):
        assert coerce_value("", column("c", "integer")) is None
        assert coerce_value("", column("c", "text")) == ""

    def test_number_for_text_column_becomes_text(self):
        assert coerce_value(7, column("c", "text")) == "7"
        assert coerce_value(True, column("c", "text")) is True

    def test_unknown_column_passes_through(self):
        assert coerce_value("x", None) == "x"

    def test_coerce_record(self):
        columns = {"age": column("age", "integer"), "email": column("email", "text")}
        assert coerce_record({"age": "36", "email": "ada@example.com", "extra": "1"}, columns) == {
            "age": 36,
            "email": "ada@example.com",
            "extra": "1",
        }


class TestNormalize:

    def test_primitives_kept(self):
        for value in (None, "a", 1, 1.5, True, Decimal("2.5"), date(2024, 1, 1)):
            assert normalize_value(value) == value

    def test_serializable_driver_values_kept(self):
        row = normalize_row({
            "tags": ["a", "b"],
            "blob": b"\x00\x01",
            "token": uuid.UUID(int=0),
            "elapsed": timedelta(hours=1),
            "attrs": {"k": "v"},
            "opens_at": time(9, 30),
        })
        assert row == {
            "tags": ["a", "b"],
            "blob": b"\x00\x01",
            "token": uuid.UUID(int=0),
            "elapsed": timedelta(hours=1),
            "attrs": {"k": "v"},
            "opens_at": time(9, 30),
        }

    def test_array_elements_are_normalized(self):
        assert normalize_value([[1, None], [Range(1, 5)]]) == [[1, None], [str(Range(1, 5))]]

    def test_exotic_values_become_text(self):
        value = Range(1, 5)
        assert normalize_value(value) == str(value)

    def test_normalize_row_keeps_column_order(self):
        row = normalize_row({"b": 1, "a": uuid.UUID(int=0)})
        assert list(row) == ["b", "a"]

    def test_rows_serialize_as_json(self):
        page = TablePage(
            schema_name="public",
            table_name="files",
            columns=[],
            rows=[normalize_row({
                "tags": ["a", "b"],
                "blob": b"\xff\x00",
                "token": uuid.UUID(int=1),
            })],
            total_records=1,
            page=1,
            page_size=100,
        )
        row = page.model_dump(mode="json")["rows"][0]
        assert row["tags"] == ["a", "b"]
        assert base64.urlsafe_b64decode(row["blob"]) == b"\xff\x00"
        assert row["token"] == "00000000-0000-0000-0000-000000000001"
