"""
Debugger configuration.

A DebuggerConfig is immutable once built. The process-wide instance is
replaced wholesale through configure()/set_configuration(), which validate
the candidate first and then swap the reference under a lock, so readers
always observe one complete configuration.

Resolution order for values read from the environment:

1. Explicit argument (highest precedence)
2. Environment variable
3. Default value (lowest precedence)
"""

import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from threading import Lock
from typing import TYPE_CHECKING, Any

from .core.constants import (
    ENV_ALWAYS_ON,
    ENV_ENABLED,
    ENV_EVENTS,
    ENV_FORMAT,
    ENV_SAMPLING_RATE,
    ERROR_ENV_INVALID,
    FALSY_VALUES,
    TRUTHY_VALUES,
)
from .core.validators import (
    validate_callback,
    validate_flag,
    validate_format,
    validate_kinds,
    validate_sampling_rate,
    validate_seed,
    validate_sink,
)
from .events import DEFAULT_OBSERVED_KINDS, EventDetails, EventKind
from .exceptions import InvalidConfiguration

if TYPE_CHECKING:
    from .sinks import Sink

logger = logging.getLogger(__name__)

EventFilter = Callable[[EventKind, EventDetails], bool]
EventHook = Callable[[EventKind, EventDetails], Any]


class OutputFormat(str, Enum):
    """Rendering applied by the formatter."""

    TEXT = "text"
    JSON = "json"

    @classmethod
    def coerce(cls, value: "str | OutputFormat") -> "OutputFormat":
        """Accept a member or its (case-insensitive) value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidConfiguration(f"format must be one of text, json, got {value!r}")


@dataclass(frozen=True)
class DebuggerConfig:
    """Settings controlling which signals become events and where they go.

    Attributes:
        enabled: Master switch; when False no signal becomes an event
        observed_kinds: Allow-list of kinds; others are dropped first
        sampling_rate: Probability of keeping a signal (None keeps all)
        custom_filter: Final gate called with (kind, details)
        on_event: Side effect called with (kind, details) for each event
        format: Formatter output (text or JSON)
        sink: Destination for formatted output (None uses the logging sink)
        unsampled_kinds: Kinds that bypass sampling
        seed: Seed for deterministic sampling, mainly for tests
        always_on: Capture signals outside any trace scope
    """

    enabled: bool = True
    observed_kinds: frozenset[EventKind] = DEFAULT_OBSERVED_KINDS
    sampling_rate: float | None = None
    custom_filter: EventFilter | None = None
    on_event: EventHook | None = None
    format: OutputFormat = OutputFormat.TEXT
    sink: "Sink | None" = None
    unsampled_kinds: frozenset[EventKind] = field(default_factory=frozenset)
    seed: int | None = None
    always_on: bool = False

    def validate(self) -> "DebuggerConfig":
        """Check every field, raising InvalidConfiguration on the first problem.

        Returns:
            The same configuration, to allow chaining
        """
        validate_flag("enabled", self.enabled)
        validate_flag("always_on", self.always_on)
        validate_format(self.format, OutputFormat)
        validate_sampling_rate(self.sampling_rate)
        validate_callback("custom_filter", self.custom_filter)
        validate_callback("on_event", self.on_event)
        validate_kinds("observed_kinds", self.observed_kinds, EventKind)
        validate_kinds("unsampled_kinds", self.unsampled_kinds, EventKind)
        validate_sink(self.sink)
        validate_seed(self.seed)
        return self

    def with_changes(self, **changes: Any) -> "DebuggerConfig":
        """Return a validated copy with the given fields replaced."""
        return replace(self, **_normalize_changes(changes)).validate()

    def observes(self, kind: EventKind) -> bool:
        return kind in self.observed_kinds

    @classmethod
    def from_env(cls, **overrides: Any) -> "DebuggerConfig":
        """Build a configuration from environment variables.

        Explicit keyword overrides win over the environment.

        Raises:
            InvalidConfiguration: If a variable cannot be parsed
        """
        values: dict[str, Any] = {}

        enabled = os.getenv(ENV_ENABLED)
        if enabled:
            values["enabled"] = _parse_bool(ENV_ENABLED, enabled)

        always_on = os.getenv(ENV_ALWAYS_ON)
        if always_on:
            values["always_on"] = _parse_bool(ENV_ALWAYS_ON, always_on)

        sampling_rate = os.getenv(ENV_SAMPLING_RATE)
        if sampling_rate:
            values["sampling_rate"] = _parse_float(ENV_SAMPLING_RATE, sampling_rate)

        output_format = os.getenv(ENV_FORMAT)
        if output_format:
            values["format"] = output_format

        events = os.getenv(ENV_EVENTS)
        if events:
            values["observed_kinds"] = _parse_kinds(ENV_EVENTS, events)

        values.update(overrides)
        return cls().with_changes(**values)


def _normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Coerce convenient input forms (strings, lists) to field types."""
    unknown = set(changes) - {f.name for f in fields(DebuggerConfig)}
    if unknown:
        raise InvalidConfiguration(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

    normalized = dict(changes)
    if "format" in normalized:
        normalized["format"] = OutputFormat.coerce(normalized["format"])
    for name in ("observed_kinds", "unsampled_kinds"):
        if name in normalized:
            normalized[name] = _coerce_kinds(name, normalized[name])
    return normalized


def _coerce_kinds(name: str, kinds: Iterable[Any]) -> frozenset[EventKind]:
    if isinstance(kinds, (str, EventKind)):
        kinds = [kinds]
    try:
        return frozenset(EventKind.parse(kind) for kind in kinds)
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidConfiguration(f"{name} contains an unknown event kind: {e}") from e


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUTHY_VALUES:
        return True
    if value in FALSY_VALUES:
        return False
    raise InvalidConfiguration(ERROR_ENV_INVALID.format(name=name, value=raw))


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as e:
        raise InvalidConfiguration(ERROR_ENV_INVALID.format(name=name, value=raw)) from e


def _parse_kinds(name: str, raw: str) -> frozenset[EventKind]:
    parts = [part for part in (chunk.strip() for chunk in raw.split(",")) if part]
    try:
        return frozenset(EventKind.parse(part) for part in parts)
    except ValueError as e:
        raise InvalidConfiguration(ERROR_ENV_INVALID.format(name=name, value=raw)) from e


# Process-wide configuration
_config_lock = Lock()
_configuration = DebuggerConfig()


def get_configuration() -> DebuggerConfig:
    """Return the current process-wide configuration."""
    return _configuration


def set_configuration(config: DebuggerConfig) -> DebuggerConfig:
    """Validate and install a configuration.

    Raises:
        InvalidConfiguration: If the configuration is invalid; the current
            configuration stays in place
    """
    global _configuration

    if not isinstance(config, DebuggerConfig):
        raise InvalidConfiguration(f"Expected DebuggerConfig, got {type(config).__name__}")
    config.validate()
    with _config_lock:
        _configuration = config
    logger.debug("Cache debugger configuration updated: %s", config)
    return config


def configure(**changes: Any) -> DebuggerConfig:
    """Apply field changes to the process-wide configuration atomically.

    Example:
        ```python
        configure(sampling_rate=0.1, observed_kinds={"cache_read.miss"})
        ```
    """
    global _configuration

    with _config_lock:
        updated = _configuration.with_changes(**changes)
        _configuration = updated
    logger.debug("Cache debugger configuration updated: %s", updated)
    return updated


def reset_configuration() -> DebuggerConfig:
    """Restore defaults. Used mainly by tests."""
    return set_configuration(DebuggerConfig())
