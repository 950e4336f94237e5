"""Event metrics collectors usable as on_event hooks."""

import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from opentelemetry import metrics as otel_metrics

from .events import EventDetails, EventKind

logger = logging.getLogger(__name__)

EventHook = Callable[[EventKind, EventDetails], Any]

_HIT_KINDS = frozenset({EventKind.READ_HIT, EventKind.FETCH_HIT})
_MISS_KINDS = frozenset({EventKind.READ_MISS, EventKind.FETCH_MISS})


@dataclass
class KeyStats:
    """Statistics for one cache key."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    total_duration_ms: float = 0.0

    @property
    def total_reads(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        total = self.total_reads
        return self.hits / total if total > 0 else 0.0

    def copy(self) -> "KeyStats":
        return KeyStats(
            hits=self.hits,
            misses=self.misses,
            writes=self.writes,
            deletes=self.deletes,
            errors=self.errors,
            total_duration_ms=self.total_duration_ms,
        )


@dataclass
class EventStats:
    """Aggregated statistics across all keys."""

    counts: dict[EventKind, int] = field(default_factory=dict)
    durations_ms: list[float] = field(default_factory=list)

    @property
    def total_events(self) -> int:
        return sum(self.counts.values())

    @property
    def hits(self) -> int:
        return sum(self.counts.get(kind, 0) for kind in _HIT_KINDS)

    @property
    def misses(self) -> int:
        return sum(self.counts.get(kind, 0) for kind in _MISS_KINDS)

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def avg_duration_ms(self) -> float:
        if not self.durations_ms:
            return 0.0
        return sum(self.durations_ms) / len(self.durations_ms)


class InMemoryEventMetrics:
    """In-memory event collector with per-key statistics.

    Useful for development and tests. Thread-safe.

    Example:
        ```python
        metrics = InMemoryEventMetrics()
        configure(on_event=metrics, observed_kinds=ALL_KINDS)
        ...
        print(metrics.get_stats().hit_ratio)
        ```
    """

    def __init__(self, max_samples: int = 1000, max_keys: int = 10_000) -> None:
        """Initialize collector.

        Args:
            max_samples: Maximum number of duration samples kept
            max_keys: Maximum number of keys tracked; the least recently
                seen key is evicted first
        """
        if max_keys < 1:
            raise ValueError(f"max_keys must be >= 1, got {max_keys}")
        self._max_samples = max_samples
        self._max_keys = max_keys
        self._lock = Lock()
        self._overall = EventStats()
        self._by_key: OrderedDict[str, KeyStats] = OrderedDict()

    def __call__(self, kind: EventKind, details: EventDetails) -> None:
        self.record(kind, details)

    def record(self, kind: EventKind, details: EventDetails) -> None:
        with self._lock:
            self._overall.counts[kind] = self._overall.counts.get(kind, 0) + 1
            self._overall.durations_ms.append(details.duration_ms)
            if len(self._overall.durations_ms) > self._max_samples:
                del self._overall.durations_ms[: len(self._overall.durations_ms) - self._max_samples]

            stats = self._key_stats(details.key)
            stats.total_duration_ms += details.duration_ms
            if kind in _HIT_KINDS:
                stats.hits += 1
            elif kind in _MISS_KINDS:
                stats.misses += 1
            elif kind == EventKind.WRITE:
                stats.writes += 1
            elif kind == EventKind.DELETE:
                stats.deletes += 1
            elif kind == EventKind.OPERATION_ERROR:
                stats.errors += 1

    def _key_stats(self, key: str) -> KeyStats:
        """Stats for key, evicting the least recently seen key when full. Caller holds the lock."""
        stats = self._by_key.get(key)
        if stats is None:
            if len(self._by_key) >= self._max_keys:
                self._by_key.popitem(last=False)
            stats = self._by_key[key] = KeyStats()
        else:
            self._by_key.move_to_end(key)
        return stats

    def get_stats(self) -> EventStats:
        with self._lock:
            return EventStats(counts=dict(self._overall.counts), durations_ms=list(self._overall.durations_ms))

    def get_key_stats(self, key: str) -> KeyStats | None:
        with self._lock:
            if key not in self._by_key:
                return None
            return self._by_key[key].copy()

    def get_top_keys(self, by: str = "hits", limit: int = 10) -> list[tuple[str, int]]:
        """Most active keys.

        Args:
            by: Ordering field (hits, misses, writes, deletes, errors)
            limit: Maximum number of keys returned
        """
        with self._lock:
            items = [(key, getattr(stats, by)) for key, stats in self._by_key.items()]
        items.sort(key=lambda item: item[1], reverse=True)
        return items[:limit]

    def reset(self) -> None:
        with self._lock:
            self._overall = EventStats()
            self._by_key.clear()


class OpenTelemetryEventMetrics:
    """Exports events as OpenTelemetry metrics.

    Exported instruments:
    - cache_debugger.events (counter): events by kind
    - cache_debugger.errors (counter): store failures by key
    - cache_debugger.duration (histogram): operation duration in ms

    Example:
        ```python
        from opentelemetry import metrics
        from opentelemetry.sdk.metrics import MeterProvider

        metrics.set_meter_provider(MeterProvider())
        configure(on_event=OpenTelemetryEventMetrics())
        ```
    """

    def __init__(self, meter_name: str = "cache_debugger") -> None:
        meter = otel_metrics.get_meter(meter_name)

        self._events_counter = meter.create_counter(
            "cache_debugger.events",
            description="Cache events by kind",
            unit="1",
        )
        self._errors_counter = meter.create_counter(
            "cache_debugger.errors",
            description="Cache store failures",
            unit="1",
        )
        self._duration_histogram = meter.create_histogram(
            "cache_debugger.duration",
            description="Duration of cache operations",
            unit="ms",
        )

    def __call__(self, kind: EventKind, details: EventDetails) -> None:
        attributes = {"event": kind.value, "operation": details.operation}
        self._events_counter.add(1, attributes)
        self._duration_histogram.record(details.duration_ms, attributes)
        if kind == EventKind.OPERATION_ERROR:
            self._errors_counter.add(1, {"key": details.key, "operation": details.operation})


class CompositeEventHook:
    """Delegates each event to several hooks.

    Example:
        hook = CompositeEventHook([InMemoryEventMetrics(), OpenTelemetryEventMetrics()])
    """

    def __init__(self, hooks: list[EventHook]) -> None:
        self._hooks = list(hooks)

    def __call__(self, kind: EventKind, details: EventDetails) -> None:
        for hook in self._hooks:
            try:
                hook(kind, details)
            except Exception as e:
                logger.warning("Hook error for %s event (key '%s'): %s", kind.value, details.key, e)

    def add_hook(self, hook: EventHook) -> None:
        self._hooks.append(hook)

    def remove_hook(self, hook: EventHook) -> bool:
        try:
            self._hooks.remove(hook)
            return True
        except ValueError:
            return False
