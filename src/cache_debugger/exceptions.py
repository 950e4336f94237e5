"""Exception hierarchy for cache-debugger."""


class CacheDebuggerError(Exception):
    """Base error for the debugger and its bundled components."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class InvalidConfiguration(CacheDebuggerError, ValueError):
    """Configuration failed validation.

    Raised at setup time only; a running debugger never raises it.
    """

    pass


class StoreOperationError(CacheDebuggerError):
    """Failure reported by a bundled cache store.

    The facade passes store failures through unchanged, whatever their type.
    """

    pass


class StoreConnectionError(StoreOperationError):
    """The store backend could not be reached."""

    pass


class StoreSerializationError(StoreOperationError):
    """A value could not be packed or unpacked by the store."""

    pass


class FormattingError(CacheDebuggerError):
    """An event could not be rendered. Always swallowed by the subscriber."""

    pass


class SinkDeliveryError(CacheDebuggerError):
    """A sink failed to accept formatted output. Logged, never retried."""

    pass
