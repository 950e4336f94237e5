"""
Instrumented cache facade.

CacheDebugger wraps any CacheStore. Each operation is timed around the store
call and published as a Signal on the notifier; subscribers decide whether
the signal becomes a visible event. The store's return value and exceptions
always reach the caller unchanged.

Usage:
    ```python
    from cache_debugger import CacheDebugger, MemoryStore

    debugger = CacheDebugger(MemoryStore())

    with debugger.trace():
        debugger.write("user:1", {"name": "Ada"})
        debugger.read("user:1")

    @debugger.traced
    def handle_request(user_id):
        return debugger.fetch(f"user:{user_id}", lambda: load_user(user_id))
    ```
"""

import contextlib
import inspect
import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, ContextManager, TypeVar

from .config import DebuggerConfig, configure, get_configuration
from .core.constants import DURATION_PRECISION
from .events import EventDetails, EventKind, Signal
from .notifications import Notifier, get_notifier
from .stores import CacheStore
from .subscriber import ConfigProvider, EventSubscriber, follow_always_on
from .version import __version__

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _elapsed_ms(start: float) -> float:
    return max(round((time.perf_counter() - start) * 1000, DURATION_PRECISION), 0.0)


class CacheDebugger:
    """Observability wrapper around a cache store.

    Attributes:
        store: The wrapped cache store
        subscriber: Subscriber used by trace scopes
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        notifier: Notifier | None = None,
        config_provider: ConfigProvider = get_configuration,
    ) -> None:
        """Initialize the facade.

        Args:
            store: Cache store to wrap
            notifier: Transport for signals (default: process-wide notifier)
            config_provider: Callable returning the configuration to apply

        Raises:
            ValueError: If store is None
        """
        if store is None:
            raise ValueError("Cache store cannot be None")

        self._store = store
        self._notifier = notifier or get_notifier()
        self._config_provider = config_provider
        self._subscriber = EventSubscriber(config_provider, self._notifier)

        follow_always_on(config_provider(), self._notifier, config_provider)

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def subscriber(self) -> EventSubscriber:
        return self._subscriber

    # ========== Class-level helpers ==========

    @classmethod
    def configure(cls, **changes: Any) -> DebuggerConfig:
        """Update the process-wide configuration (validated, atomic)."""
        return configure(**changes)

    @classmethod
    def configuration(cls) -> DebuggerConfig:
        return get_configuration()

    @classmethod
    def version(cls) -> str:
        return __version__

    # ========== Cache operations ==========

    def read(self, key: str, **options: Any) -> Any | None:
        """Read a value; emits READ_HIT or READ_MISS."""

        def describe(value: Any) -> tuple[EventKind, dict[str, Any]]:
            if value is None:
                return EventKind.READ_MISS, {}
            return EventKind.READ_HIT, {"value": value}

        return self._measure("read", key, lambda: self._store.read(key, **options), describe)

    def write(self, key: str, value: Any, **options: Any) -> Any:
        """Write a value; emits WRITE."""
        return self._measure(
            "write",
            key,
            lambda: self._store.write(key, value, **options),
            lambda _result: (EventKind.WRITE, {"value": value}),
        )

    def delete(self, key: str, **options: Any) -> Any:
        """Delete a value; emits DELETE."""
        return self._measure(
            "delete",
            key,
            lambda: self._store.delete(key, **options),
            lambda _result: (EventKind.DELETE, {}),
        )

    def exists(self, key: str, **options: Any) -> Any:
        """Check for a key; emits EXIST with the result."""
        return self._measure(
            "exists",
            key,
            lambda: self._store.exists(key, **options),
            lambda result: (EventKind.EXIST, {"exists": bool(result)}),
        )

    def fetch(self, key: str, compute: Callable[[], T], **options: Any) -> Any | T:
        """Read a value, computing and storing it when absent.

        Emits FETCH_HIT when the value was stored, FETCH_MISS after compute
        and write-back. A failing compute propagates without any event.
        """
        config = self._config_provider()
        instrumented = config.enabled
        if instrumented:
            follow_always_on(config, self._notifier, self._config_provider)
        start = time.perf_counter()

        value = self._call_store("fetch", key, start, instrumented, lambda: self._store.read(key, **options))
        if value is not None:
            if instrumented:
                self._emit(EventKind.FETCH_HIT, key, "fetch", _elapsed_ms(start), value=value)
            return value

        value = compute()
        self._call_store("fetch", key, start, instrumented, lambda: self._store.write(key, value, **options))
        if instrumented:
            self._emit(EventKind.FETCH_MISS, key, "fetch", _elapsed_ms(start), value=value)
        return value

    fetch_or_compute = fetch

    # ========== Tracing ==========

    def trace(self, unit_of_work: Callable[..., T] | None = None, *args: Any, **kwargs: Any) -> Any:
        """Capture events for a unit of work.

        With a callable, runs it inside a subscription scope and returns its
        result. Without one, returns a context manager.
        """
        if unit_of_work is None:
            return self._trace_context()
        with self._trace_context():
            return unit_of_work(*args, **kwargs)

    def traced(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Decorator running each call of func inside a trace scope.

        Works with both sync and async functions.
        """
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self._trace_context():
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            return self.trace(func, *args, **kwargs)

        return sync_wrapper

    def _trace_context(self) -> ContextManager[Any]:
        if not self._config_provider().enabled:
            return contextlib.nullcontext()
        return self._subscriber.scope()

    # ========== Instrumentation ==========

    def _measure(
        self,
        operation: str,
        key: str,
        call: Callable[[], T],
        describe: Callable[[T], tuple[EventKind, dict[str, Any]]],
    ) -> T:
        """Time a store call and publish its outcome."""
        config = self._config_provider()
        if not config.enabled:
            return call()
        # Always-on mode follows the live configuration
        follow_always_on(config, self._notifier, self._config_provider)

        start = time.perf_counter()
        result = self._call_store(operation, key, start, True, call)
        duration_ms = _elapsed_ms(start)

        try:
            kind, fields = describe(result)
        except Exception as e:
            logger.debug("Could not describe %s result for key '%s': %s", operation, key, e)
            return result

        self._emit(kind, key, operation, duration_ms, **fields)
        return result

    def _call_store(self, operation: str, key: str, start: float, instrumented: bool, call: Callable[[], T]) -> T:
        """Invoke the store, publishing OPERATION_ERROR before re-raising."""
        try:
            return call()
        except Exception as e:
            if instrumented:
                message = str(e) or type(e).__name__
                self._emit(EventKind.OPERATION_ERROR, key, operation, _elapsed_ms(start), error_message=message)
            raise

    def _emit(self, kind: EventKind, key: Any, operation: str, duration_ms: float, **fields: Any) -> None:
        """Build and publish a signal. Never raises."""
        try:
            details = EventDetails(key=str(key), duration_ms=duration_ms, operation=operation, **fields)
            self._notifier.publish(kind.value, Signal(kind, details))
        except Exception as e:
            logger.debug("Failed to publish %s signal for key '%s': %s", kind.value, key, e)
