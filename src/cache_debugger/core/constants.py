"""
Constants for cache debugger core components.

Defines default values, environment variable names and error message
templates used throughout the debugger to keep them in one place.
"""

# Log prefix shared by every sink that writes text
LOG_PREFIX = "[CacheDebugger]"

# Duration rounding (milliseconds, decimal places)
DURATION_PRECISION = 2

# Sampling bounds
MIN_SAMPLING_RATE = 0.0
MAX_SAMPLING_RATE = 1.0

# Callback arity for custom_filter and on_event: (kind, details)
CALLBACK_ARITY = 2

# Background delivery
DEFAULT_MAX_PENDING = 1000
BACKGROUND_THREAD_PREFIX = "cache-debugger-sink"

# Environment variable names
ENV_ENABLED = "CACHE_DEBUGGER_ENABLED"
ENV_SAMPLING_RATE = "CACHE_DEBUGGER_SAMPLING_RATE"
ENV_FORMAT = "CACHE_DEBUGGER_FORMAT"
ENV_EVENTS = "CACHE_DEBUGGER_EVENTS"
ENV_ALWAYS_ON = "CACHE_DEBUGGER_ALWAYS_ON"

TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})
FALSY_VALUES = frozenset({"0", "false", "no", "off"})

# Error message templates
ERROR_FORMAT_INVALID = "format must be one of {choices}, got {value!r}"
ERROR_SAMPLING_RATE_TYPE = "sampling_rate must be float or None, got {type_name}"
ERROR_SAMPLING_RATE_RANGE = "sampling_rate must be within [0.0, 1.0], got {value}"
ERROR_CALLBACK_NOT_CALLABLE = "{name} must be callable, got {type_name}"
ERROR_CALLBACK_ARITY = "{name} must accept (kind, details) positional arguments"
ERROR_KINDS_INVALID = "{name} must contain only EventKind members, got {value!r}"
ERROR_SINK_INVALID = "sink must provide a callable accept(output), got {type_name}"
ERROR_SEED_INVALID = "seed must be int or None, got {type_name}"
ERROR_FLAG_INVALID = "{name} must be bool, got {type_name}"
ERROR_ENV_INVALID = "Invalid value for {name}: {value!r}"
