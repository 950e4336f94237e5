"""
Sinks receiving formatted event output.

Provides the Sink protocol plus implementations for the common destinations:
- LoggingSink: standard logging (the default)
- StreamSink: plain text stream such as stdout
- InMemorySink: captured list, useful in tests
- CompositeSink: fan-out to several sinks
- BackgroundSink: hands delivery to a worker thread so callers never wait
"""

import concurrent.futures
import logging
import sys
from threading import Lock
from typing import Protocol, TextIO, runtime_checkable

from .core.constants import BACKGROUND_THREAD_PREFIX, DEFAULT_MAX_PENDING, LOG_PREFIX
from .exceptions import SinkDeliveryError

logger = logging.getLogger(__name__)

EVENT_LOGGER_NAME = "cache_debugger"


@runtime_checkable
class Sink(Protocol):
    """Protocol for event destinations.

    Example:
        ```python
        class ListSink:
            def __init__(self):
                self.lines = []

            def accept(self, output: str) -> None:
                self.lines.append(output)
        ```
    """

    def accept(self, output: str) -> None:
        """Receive one formatted event.

        Raises:
            SinkDeliveryError: If the output could not be delivered
        """
        ...


class LoggingSink:
    """Writes each event to a logger with the debugger prefix."""

    def __init__(self, event_logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        """Initialize sink.

        Args:
            event_logger: Logger to write to (default: "cache_debugger")
            level: Log level for events (default: INFO)
        """
        self._logger = event_logger or logging.getLogger(EVENT_LOGGER_NAME)
        self._level = level

    def accept(self, output: str) -> None:
        self._logger.log(self._level, "%s %s", LOG_PREFIX, output)


class StreamSink:
    """Writes each event as one prefixed line to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._lock = Lock()

    def accept(self, output: str) -> None:
        # Resolved lazily so pytest's capsys and redirected stdout are honoured
        stream = self._stream or sys.stdout
        try:
            with self._lock:
                stream.write(f"{LOG_PREFIX} {output}\n")
                stream.flush()
        except (OSError, ValueError) as e:
            raise SinkDeliveryError(f"Failed to write event to stream: {e}") from e


class InMemorySink:
    """Keeps formatted events in memory (thread-safe)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._outputs: list[str] = []

    def accept(self, output: str) -> None:
        with self._lock:
            self._outputs.append(output)

    @property
    def outputs(self) -> list[str]:
        """Copy of the events received so far, in delivery order."""
        with self._lock:
            return list(self._outputs)

    def clear(self) -> None:
        with self._lock:
            self._outputs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._outputs)


class CompositeSink:
    """Delivers every event to several sinks.

    A failing sink does not prevent delivery to the others; failures are
    collected and reported as one SinkDeliveryError afterwards.

    Example:
        sink = CompositeSink([LoggingSink(), InMemorySink()])
    """

    def __init__(self, sinks: list[Sink]) -> None:
        self._sinks = list(sinks)

    def accept(self, output: str) -> None:
        failures: list[str] = []
        for sink in self._sinks:
            try:
                sink.accept(output)
            except Exception as e:
                failures.append(f"{type(sink).__name__}: {e}")
        if failures:
            raise SinkDeliveryError("; ".join(failures))

    def add_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> bool:
        """Remove a sink.

        Returns:
            True if sink was found and removed, False otherwise
        """
        try:
            self._sinks.remove(sink)
            return True
        except ValueError:
            return False


class BackgroundSink:
    """Delivers events to a wrapped sink from a single worker thread.

    accept() only enqueues, so the caller of the instrumented cache operation
    never waits on the destination. One worker keeps delivery order. When
    more than max_pending events are waiting, new events are dropped.
    """

    def __init__(self, sink: Sink, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        if max_pending < 1:
            raise ValueError(f"max_pending must be >= 1, got {max_pending}")
        self._sink = sink
        self._max_pending = max_pending
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=BACKGROUND_THREAD_PREFIX
        )
        self._lock = Lock()
        self._pending = 0
        self._dropped = 0
        self._closed = False

    @property
    def dropped(self) -> int:
        """Events discarded because the backlog was full."""
        with self._lock:
            return self._dropped

    def accept(self, output: str) -> None:
        with self._lock:
            if self._closed:
                raise SinkDeliveryError("BackgroundSink is closed")
            if self._pending >= self._max_pending:
                self._dropped += 1
                logger.warning("Background sink backlog full (%d), dropping event", self._max_pending)
                return
            self._pending += 1
            self._executor.submit(self._deliver, output)

    def _deliver(self, output: str) -> None:
        try:
            self._sink.accept(output)
        except Exception as e:
            logger.warning("Background delivery failed: %s", e)
        finally:
            with self._lock:
                self._pending -= 1

    def flush(self, timeout: float | None = None) -> None:
        """Block until every event queued so far has been delivered."""
        with self._lock:
            if self._closed:
                return
            marker = self._executor.submit(lambda: None)
        marker.result(timeout=timeout)

    def close(self) -> None:
        """Deliver pending events and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "BackgroundSink":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
