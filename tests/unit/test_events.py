"""Unit tests for event record types."""

from datetime import datetime, timezone

import pytest

from cache_debugger.events import MISSING, EventDetails, EventKind, Signal


class TestEventKind:
    """Test EventKind."""

    def test_values_are_signal_names(self) -> None:
        assert EventKind.READ_HIT.value == "cache_read.hit"
        assert EventKind.READ_MISS.value == "cache_read.miss"
        assert EventKind.FETCH_MISS.value == "cache_fetch.miss"
        assert str(EventKind.WRITE) == "cache_write"

    def test_tags(self) -> None:
        # Arrange
        expected = {
            EventKind.READ_HIT: "HIT",
            EventKind.READ_MISS: "MISS",
            EventKind.WRITE: "WRITE",
            EventKind.DELETE: "DELETE",
            EventKind.EXIST: "EXIST",
            EventKind.FETCH_HIT: "FETCH_HIT",
            EventKind.FETCH_MISS: "FETCH_MISS",
            EventKind.OPERATION_ERROR: "ERROR",
        }

        # Act & Assert
        for kind, tag in expected.items():
            assert kind.tag == tag

    def test_parse_by_value_and_name(self) -> None:
        assert EventKind.parse("cache_exist") is EventKind.EXIST
        assert EventKind.parse("fetch_hit") is EventKind.FETCH_HIT
        assert EventKind.parse(EventKind.DELETE) is EventKind.DELETE

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown event kind"):
            EventKind.parse("cache_evict")


class TestEventDetails:
    """Test EventDetails."""

    def test_minimal_details(self) -> None:
        # Act
        details = EventDetails(key="k", duration_ms=1.5)

        # Assert
        assert details.value is MISSING
        assert details.has_value is False
        assert details.to_dict() == {"key": "k", "duration_ms": 1.5}
        assert details.captured_at.tzinfo is timezone.utc

    def test_to_dict_includes_present_fields(self) -> None:
        # Arrange
        details = EventDetails(key="k", duration_ms=0.1, value=None, exists=False, error_message="boom")

        # Act
        data = details.to_dict()

        # Assert
        assert data == {"key": "k", "duration_ms": 0.1, "value": None, "exists": False, "error_message": "boom"}

    def test_rejects_negative_duration(self) -> None:
        with pytest.raises(ValueError, match="duration_ms"):
            EventDetails(key="k", duration_ms=-0.01)

    def test_rejects_empty_key(self) -> None:
        with pytest.raises(ValueError, match="key"):
            EventDetails(key="", duration_ms=0.0)

    def test_is_immutable(self) -> None:
        details = EventDetails(key="k", duration_ms=0.0)
        with pytest.raises(AttributeError):
            details.key = "other"  # type: ignore[misc]

    def test_missing_sentinel(self) -> None:
        assert repr(MISSING) == "MISSING"
        assert not MISSING


class TestSignal:
    def test_name(self) -> None:
        signal = Signal(EventKind.WRITE, EventDetails(key="k", duration_ms=0.0, captured_at=datetime.now(timezone.utc)))
        assert signal.name == "cache_write"
