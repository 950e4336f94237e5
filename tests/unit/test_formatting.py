"""Unit tests for event formatting and JSON normalization."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from cache_debugger.codecs import normalize_for_json
from cache_debugger.config import OutputFormat
from cache_debugger.events import EventDetails, EventKind
from cache_debugger.exceptions import FormattingError
from cache_debugger.formatting import build_payload, format_event

CAPTURED_AT = datetime(2025, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


def _details(**kwargs) -> EventDetails:
    kwargs.setdefault("key", "test_key")
    kwargs.setdefault("duration_ms", 1.23)
    kwargs.setdefault("captured_at", CAPTURED_AT)
    return EventDetails(**kwargs)


class TestTextFormat:
    """Test text rendering."""

    def test_read_hit(self) -> None:
        assert format_event(EventKind.READ_HIT, _details(value="v")) == "HIT key: test_key (1.23ms)"

    def test_read_miss(self) -> None:
        assert format_event(EventKind.READ_MISS, _details()) == "MISS key: test_key (1.23ms)"

    def test_write_and_delete(self) -> None:
        assert format_event(EventKind.WRITE, _details()) == "WRITE key: test_key (1.23ms)"
        assert format_event(EventKind.DELETE, _details()) == "DELETE key: test_key (1.23ms)"

    def test_fetch(self) -> None:
        assert format_event(EventKind.FETCH_HIT, _details()) == "FETCH_HIT key: test_key (1.23ms)"
        assert format_event(EventKind.FETCH_MISS, _details()) == "FETCH_MISS key: test_key (1.23ms)"

    def test_exist_appends_result(self) -> None:
        assert format_event(EventKind.EXIST, _details(exists=True)) == "EXIST key: test_key (1.23ms) exists: true"
        assert format_event(EventKind.EXIST, _details(exists=False)) == "EXIST key: test_key (1.23ms) exists: false"

    def test_error_appends_message(self) -> None:
        output = format_event(EventKind.OPERATION_ERROR, _details(error_message="Cache unavailable"))
        assert output == "ERROR key: test_key (1.23ms) error: Cache unavailable"

    def test_unknown_kind_falls_back(self) -> None:
        assert format_event("cache_cleanup", _details()) == "CACHE_CLEANUP key: test_key (1.23ms)"

    def test_whole_millisecond_duration(self) -> None:
        assert format_event(EventKind.WRITE, _details(duration_ms=2.0)) == "WRITE key: test_key (2.0ms)"


class TestJsonFormat:
    """Test JSON rendering."""

    def test_structure(self) -> None:
        # Act
        output = format_event(EventKind.READ_HIT, _details(value={"name": "Ada"}), OutputFormat.JSON)

        # Assert
        assert json.loads(output) == {
            "event": "cache_read.hit",
            "timestamp": "2025-01-15T10:30:00+00:00",
            "details": {"key": "test_key", "duration_ms": 1.23, "value": {"name": "Ada"}},
        }

    def test_timestamp_override(self) -> None:
        # Arrange
        when = datetime(2024, 6, 1, tzinfo=timezone.utc)

        # Act
        payload = json.loads(format_event(EventKind.WRITE, _details(), OutputFormat.JSON, timestamp=when))

        # Assert
        assert payload["timestamp"] == when.isoformat()

    def test_miss_has_no_value(self) -> None:
        payload = build_payload(EventKind.READ_MISS, _details())
        assert "value" not in payload["details"]

    def test_complex_values(self) -> None:
        # Arrange
        value = {
            "id": UUID("550e8400-e29b-41d4-a716-446655440000"),
            "price": Decimal("9.99"),
            "day": date(2025, 1, 15),
            "raw": b"hello",
            "tags": {"b", "a"},
        }

        # Act
        payload = json.loads(format_event(EventKind.WRITE, _details(value=value), OutputFormat.JSON))

        # Assert
        assert payload["details"]["value"] == {
            "id": "550e8400-e29b-41d4-a716-446655440000",
            "price": "9.99",
            "day": "2025-01-15",
            "raw": "aGVsbG8=",
            "tags": ["a", "b"],
        }

    def test_unrenderable_value_raises_formatting_error(self) -> None:
        with pytest.raises(FormattingError):
            format_event(EventKind.WRITE, _details(value=object()), OutputFormat.JSON)


class TestFormattingErrors:
    def test_bad_details_wrapped(self) -> None:
        with pytest.raises(FormattingError):
            format_event(EventKind.WRITE, None)  # type: ignore[arg-type]

    def test_unknown_format(self) -> None:
        with pytest.raises(FormattingError, match="Unsupported output format"):
            format_event(EventKind.WRITE, _details(), "xml")  # type: ignore[arg-type]


class TestNormalizeForJson:
    def test_custom_object_uses_dict(self) -> None:
        # Arrange
        class User:
            def __init__(self) -> None:
                self.name = "Ada"

        # Act & Assert
        assert normalize_for_json(User()) == {"name": "Ada"}

    def test_nested_collections(self) -> None:
        assert normalize_for_json({"a": (1, [2, frozenset({3})])}) == {"a": [1, [2, [3]]]}
