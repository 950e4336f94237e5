"""cache-debugger: observability for key/value cache operations.

Wraps a cache store, times each operation and emits filterable, sampled
events describing hits, misses, writes, deletes and failures.

Basic usage:
    ```python
    from cache_debugger import CacheDebugger, MemoryStore, configure

    configure(observed_kinds={"cache_read.hit", "cache_read.miss"}, sampling_rate=0.5)

    debugger = CacheDebugger(MemoryStore())
    with debugger.trace():
        debugger.read("user:1")  # [CacheDebugger] MISS key: user:1 (0.01ms)
    ```

With OpenTelemetry metrics:
    ```python
    from cache_debugger import OpenTelemetryEventMetrics, configure

    configure(on_event=OpenTelemetryEventMetrics())
    ```
"""

from .version import __version__

# Configuration
from .config import (
    DebuggerConfig,
    OutputFormat,
    configure,
    get_configuration,
    reset_configuration,
    set_configuration,
)

# Facade
from .debugger import CacheDebugger

# Events
from .events import ALL_KINDS, DEFAULT_OBSERVED_KINDS, MISSING, EventDetails, EventKind, Signal

# Exceptions
from .exceptions import (
    CacheDebuggerError,
    FormattingError,
    InvalidConfiguration,
    SinkDeliveryError,
    StoreConnectionError,
    StoreOperationError,
    StoreSerializationError,
)

# Formatting
from .formatting import format_event

# Metrics hooks
from .metrics import CompositeEventHook, InMemoryEventMetrics, OpenTelemetryEventMetrics

# Transport
from .notifications import Notifier, Subscription, get_notifier

# Sinks
from .sinks import BackgroundSink, CompositeSink, InMemorySink, LoggingSink, Sink, StreamSink

# Stores
from .stores import CacheStore, DaprStateStore, MemoryStore

# Subscription management
from .subscriber import EventSubscriber, SubscriptionScope, install, is_installed, uninstall

__all__ = [
    "__version__",
    # Facade
    "CacheDebugger",
    # Configuration
    "DebuggerConfig",
    "OutputFormat",
    "configure",
    "get_configuration",
    "set_configuration",
    "reset_configuration",
    # Events
    "EventKind",
    "EventDetails",
    "Signal",
    "MISSING",
    "ALL_KINDS",
    "DEFAULT_OBSERVED_KINDS",
    # Formatting
    "format_event",
    # Subscription
    "EventSubscriber",
    "SubscriptionScope",
    "install",
    "uninstall",
    "is_installed",
    # Transport
    "Notifier",
    "Subscription",
    "get_notifier",
    # Sinks
    "Sink",
    "LoggingSink",
    "StreamSink",
    "InMemorySink",
    "CompositeSink",
    "BackgroundSink",
    # Stores
    "CacheStore",
    "MemoryStore",
    "DaprStateStore",
    # Metrics
    "InMemoryEventMetrics",
    "OpenTelemetryEventMetrics",
    "CompositeEventHook",
    # Exceptions
    "CacheDebuggerError",
    "InvalidConfiguration",
    "StoreOperationError",
    "StoreConnectionError",
    "StoreSerializationError",
    "FormattingError",
    "SinkDeliveryError",
]
