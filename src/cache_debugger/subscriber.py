"""
Subscription management.

EventSubscriber turns raw signals into delivered events. The decision for
each signal is made in a fixed order, and the first gate that rejects the
signal drops it:

1. configuration disabled
2. kind not in observed_kinds
3. sampling draw above sampling_rate (unless the kind is unsampled)
4. custom_filter returns False (or raises)

Surviving events are handed to on_event, then formatted and sent to the
sink. Everything after the gates is best effort: failures are logged and
never reach the code that performed the cache operation.

SubscriptionScope registers the subscriber on the notifier for the lifetime
of a with-block and releases exactly the registrations it created on every
exit path. Scopes are bound to the execution context (thread or asyncio
task) that opened them, so concurrent and nested scopes never see the same
signal twice.
"""

import logging
import random
from collections.abc import Callable
from contextvars import ContextVar
from threading import Lock
from typing import Any, TypeVar

from .config import DebuggerConfig, get_configuration
from .events import EventKind, Signal
from .exceptions import FormattingError
from .formatting import format_event
from .notifications import Notifier, Subscription, get_notifier
from .sinks import LoggingSink, Sink

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfigProvider = Callable[[], DebuggerConfig]

_default_sink = LoggingSink()


class EventSubscriber:
    """Gates, formats and routes signals to the configured sink.

    Thread Safety:
    - The configuration is read once per signal, so a concurrent update is
      seen either entirely or not at all for that signal
    - The sampling random source is guarded by a lock
    """

    def __init__(
        self,
        config_provider: ConfigProvider = get_configuration,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize subscriber.

        Args:
            config_provider: Callable returning the configuration to apply
            notifier: Transport to listen on (default: process-wide notifier)
        """
        self._config_provider = config_provider
        self._notifier = notifier or get_notifier()
        self._random_lock = Lock()
        self._random = random.Random()
        self._seed: int | None = None

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def config(self) -> DebuggerConfig:
        """Configuration currently in effect."""
        return self._config_provider()

    def __call__(self, name: str, payload: Any) -> None:
        """Notifier listener entry point."""
        if isinstance(payload, Signal):
            self.handle(payload)
        else:
            logger.debug("Ignoring non-signal payload on '%s'", name)

    def handle(self, signal: Signal) -> str | None:
        """Run one signal through the pipeline.

        Returns:
            The formatted output delivered to the sink, or None if the signal
            was dropped or could not be formatted
        """
        config = self._config_provider()
        if not self.accepts(signal, config):
            return None

        kind, details = signal.kind, signal.details
        self._notify_hook(config, signal)

        try:
            output = format_event(kind, details, config.format)
        except FormattingError as e:
            logger.debug("Dropping %s event for key '%s': %s", kind.value, details.key, e)
            return None

        sink: Sink = config.sink if config.sink is not None else _default_sink
        try:
            sink.accept(output)
        except Exception as e:
            logger.warning("Sink delivery failed for %s event (key '%s'): %s", kind.value, details.key, e)
        return output

    def accepts(self, signal: Signal, config: DebuggerConfig) -> bool:
        """Apply the enablement, kind, sampling and filter gates."""
        if not config.enabled:
            return False
        if not config.observes(signal.kind):
            return False
        if not self._sampled(signal.kind, config):
            return False
        return self._filtered(signal, config)

    def _sampled(self, kind: EventKind, config: DebuggerConfig) -> bool:
        if config.sampling_rate is None or kind in config.unsampled_kinds:
            return True
        if config.sampling_rate <= 0:
            return False
        return self._draw(config.seed) <= config.sampling_rate

    def _draw(self, seed: int | None) -> float:
        """Uniform draw in [0, 1), reseeding when the configured seed changes."""
        with self._random_lock:
            if seed != self._seed:
                self._random.seed(seed)
                self._seed = seed
            return self._random.random()

    def _filtered(self, signal: Signal, config: DebuggerConfig) -> bool:
        if config.custom_filter is None:
            return True
        try:
            return bool(config.custom_filter(signal.kind, signal.details))
        except Exception as e:
            logger.warning("custom_filter raised for %s (key '%s'): %s", signal.name, signal.details.key, e)
            return False

    def _notify_hook(self, config: DebuggerConfig, signal: Signal) -> None:
        if config.on_event is None:
            return
        try:
            config.on_event(signal.kind, signal.details)
        except Exception as e:
            # Don't let hook errors block delivery
            logger.warning("on_event hook error for %s (key '%s'): %s", signal.name, signal.details.key, e)

    def scope(self, catch_all: bool = False) -> "SubscriptionScope":
        """Create a new scope bound to this subscriber."""
        return SubscriptionScope(self, catch_all=catch_all)

    def with_scope(self, unit_of_work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run unit_of_work with this subscriber listening.

        Returns:
            Whatever unit_of_work returns; its exceptions propagate unchanged
        """
        with self.scope():
            return unit_of_work(*args, **kwargs)



# Scopes opened in the current execution context, innermost last. asyncio
# tasks copy the context when created; new threads start with an empty one.
_open_scopes: ContextVar[tuple["SubscriptionScope", ...]] = ContextVar("cache_debugger_open_scopes", default=())


def current_scope(notifier: Notifier | None = None) -> "SubscriptionScope | None":
    """Innermost scope open in the calling context (on notifier, when given)."""
    for scope in reversed(_open_scopes.get()):
        if scope.active and (notifier is None or scope.subscriber.notifier is notifier):
            return scope
    return None


class SubscriptionScope:
    """Guaranteed-release registration of a subscriber.

    On enter, one listener per observed kind is registered (or one catch-all
    listener). On exit, whether normal or by exception, every handle created
    by this scope is released exactly once. Other scopes' handles are never
    touched. A scope may be entered again after it has exited.

    A scope only handles signals published from the execution context that
    opened it, and only while it is the innermost open scope there, so each
    operation yields at most one event. A catch-all scope is not bound to a
    context: it handles signals published where no scope is open.

    Example:
        ```python
        with subscriber.scope():
            debugger.read("user:1")
        ```
    """

    def __init__(self, subscriber: EventSubscriber, catch_all: bool = False) -> None:
        self._subscriber = subscriber
        self._catch_all = catch_all
        self._lock = Lock()
        self._handles: list[Subscription] | None = None

    @property
    def subscriber(self) -> EventSubscriber:
        return self._subscriber

    @property
    def active(self) -> bool:
        return self._handles is not None

    @property
    def handles(self) -> tuple[Subscription, ...]:
        return tuple(self._handles or ())

    def open(self) -> "SubscriptionScope":
        """Register listeners.

        Raises:
            RuntimeError: If the scope is already active
        """
        with self._lock:
            if self._handles is not None:
                raise RuntimeError("Subscription scope is already active")
            self._handles = []
            try:
                for name in self._signal_names():
                    self._handles.append(self._subscriber.notifier.subscribe(name, self._deliver))
            except Exception:
                self._release_locked()
                raise
        if not self._catch_all:
            _open_scopes.set((*_open_scopes.get(), self))
        logger.debug("Opened subscription scope with %d listener(s)", len(self.handles))
        return self

    def close(self) -> None:
        """Release this scope's listeners. Safe to call more than once."""
        with self._lock:
            self._release_locked()
        if not self._catch_all:
            _open_scopes.set(tuple(scope for scope in _open_scopes.get() if scope is not self))

    def _release_locked(self) -> None:
        handles, self._handles = self._handles, None
        for handle in handles or ():
            self._subscriber.notifier.unsubscribe(handle)

    def _deliver(self, name: str, payload: Any) -> None:
        """Notifier listener; runs in the publisher's context."""
        owner = current_scope(self._subscriber.notifier)
        if self._catch_all:
            if owner is not None:
                return
        elif owner is not self:
            return
        self._subscriber(name, payload)

    def _signal_names(self) -> list[str | None]:
        if self._catch_all:
            return [None]
        config = self._subscriber.config
        return [kind.value for kind in sorted(config.observed_kinds, key=lambda k: k.value)]

    def __enter__(self) -> "SubscriptionScope":
        return self.open()

    def __exit__(self, *args: object) -> None:
        self.close()


# Process-wide always-on subscription
_global_lock = Lock()
_global_scope: SubscriptionScope | None = None
# True when the subscriber was installed to follow config.always_on
_global_managed = False


def install(notifier: Notifier | None = None, config_provider: ConfigProvider = get_configuration) -> bool:
    """Register a process-wide catch-all subscriber.

    Signals published outside any trace scope are then captured. Idempotent.

    Returns:
        True if a subscriber was installed, False if one already was
    """
    return _install(notifier, config_provider, managed=False)


def _install(notifier: Notifier | None, config_provider: ConfigProvider, managed: bool) -> bool:
    global _global_scope, _global_managed

    with _global_lock:
        if _global_scope is not None:
            return False
        scope = EventSubscriber(config_provider, notifier).scope(catch_all=True)
        scope.open()
        _global_scope = scope
        _global_managed = managed
    logger.info("Installed always-on cache debugger subscriber")
    return True


def uninstall() -> bool:
    """Remove the process-wide subscriber.

    Returns:
        True if a subscriber was removed
    """
    return _uninstall(managed_only=False)


def _uninstall(managed_only: bool) -> bool:
    global _global_scope, _global_managed

    with _global_lock:
        if _global_scope is None or (managed_only and not _global_managed):
            return False
        scope, _global_scope = _global_scope, None
        _global_managed = False
    scope.close()
    logger.info("Removed always-on cache debugger subscriber")
    return True


def follow_always_on(
    config: DebuggerConfig,
    notifier: Notifier | None = None,
    config_provider: ConfigProvider = get_configuration,
) -> None:
    """Install or remove the process-wide subscriber to match config.always_on.

    A subscriber registered explicitly with install() is left in place.
    """
    if config.always_on:
        if _global_scope is None:
            _install(notifier, config_provider, managed=True)
    elif _global_managed:
        _uninstall(managed_only=True)


def is_installed(notifier: Notifier | None = None) -> bool:
    """Whether an always-on subscriber listens (on notifier, when given)."""
    scope = _global_scope
    if scope is None:
        return False
    return notifier is None or scope.subscriber.notifier is notifier
