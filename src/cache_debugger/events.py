"""
Event record types.

A Signal is the raw notification published by the facade after each cache
operation; an event is a signal that survived filtering. Both share the
EventKind and EventDetails shapes defined here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class _Missing:
    """Sentinel type for an absent value (distinct from a stored None)."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class EventKind(str, Enum):
    """Closed set of observable cache outcomes.

    The value is the signal name used on the notification transport.
    """

    READ_HIT = "cache_read.hit"
    READ_MISS = "cache_read.miss"
    WRITE = "cache_write"
    DELETE = "cache_delete"
    EXIST = "cache_exist"
    FETCH_HIT = "cache_fetch.hit"
    FETCH_MISS = "cache_fetch.miss"
    OPERATION_ERROR = "cache_operation.error"

    @property
    def tag(self) -> str:
        """Upper-cased label used by the text formatter."""
        return _TAGS[self]

    @classmethod
    def parse(cls, name: "str | EventKind") -> "EventKind":
        """Resolve a kind from its signal name or member name.

        Raises:
            ValueError: If the name matches no kind
        """
        if isinstance(name, cls):
            return name
        normalized = name.strip()
        try:
            return cls(normalized)
        except ValueError:
            pass
        try:
            return cls[normalized.upper()]
        except KeyError:
            raise ValueError(f"Unknown event kind: {name!r}") from None

    def __str__(self) -> str:
        return self.value


_TAGS = {
    EventKind.READ_HIT: "HIT",
    EventKind.READ_MISS: "MISS",
    EventKind.WRITE: "WRITE",
    EventKind.DELETE: "DELETE",
    EventKind.EXIST: "EXIST",
    EventKind.FETCH_HIT: "FETCH_HIT",
    EventKind.FETCH_MISS: "FETCH_MISS",
    EventKind.OPERATION_ERROR: "ERROR",
}

DEFAULT_OBSERVED_KINDS = frozenset({EventKind.READ_HIT, EventKind.READ_MISS, EventKind.WRITE, EventKind.FETCH_HIT})
ALL_KINDS = frozenset(EventKind)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EventDetails:
    """Outcome of one cache operation.

    Attributes:
        key: Cache key the operation targeted
        duration_ms: Wall time around the store call, in milliseconds
        value: Value read, written or computed (MISSING when not applicable)
        exists: Result of an existence check
        error_message: Message of the store failure, for OPERATION_ERROR
        operation: Facade operation that produced the signal
        captured_at: UTC instant the signal was built
    """

    key: str
    duration_ms: float
    value: Any = MISSING
    exists: bool | None = None
    error_message: str | None = None
    operation: str = ""
    captured_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ValueError("key must be a non-empty string")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be >= 0, got {self.duration_ms}")

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    def to_dict(self) -> dict[str, Any]:
        """Mapping form with only the fields present for this kind."""
        data: dict[str, Any] = {"key": self.key, "duration_ms": self.duration_ms}
        if self.has_value:
            data["value"] = self.value
        if self.exists is not None:
            data["exists"] = self.exists
        if self.error_message is not None:
            data["error_message"] = self.error_message
        return data


@dataclass(frozen=True)
class Signal:
    """Raw notification that a cache operation completed."""

    kind: EventKind
    details: EventDetails

    @property
    def name(self) -> str:
        return self.kind.value
