"""
Configuration validation utilities.

Every rule raises InvalidConfiguration and never mutates its input, so the
checks can be repeated as often as needed.
"""

import inspect
from collections.abc import Callable
from enum import Enum
from typing import Any

from ..exceptions import InvalidConfiguration
from .constants import (
    CALLBACK_ARITY,
    ERROR_CALLBACK_ARITY,
    ERROR_CALLBACK_NOT_CALLABLE,
    ERROR_FLAG_INVALID,
    ERROR_FORMAT_INVALID,
    ERROR_KINDS_INVALID,
    ERROR_SAMPLING_RATE_RANGE,
    ERROR_SAMPLING_RATE_TYPE,
    ERROR_SEED_INVALID,
    ERROR_SINK_INVALID,
    MAX_SAMPLING_RATE,
    MIN_SAMPLING_RATE,
)


def validate_flag(name: str, value: Any) -> None:
    """Validate a boolean switch."""
    if not isinstance(value, bool):
        raise InvalidConfiguration(ERROR_FLAG_INVALID.format(name=name, type_name=type(value).__name__))


def validate_sampling_rate(sampling_rate: float | None) -> None:
    """Validate sampling rate parameter.

    The rate must be None (always keep) or a real number within [0.0, 1.0].

    Args:
        sampling_rate: Probability of keeping a surviving signal

    Raises:
        InvalidConfiguration: If the rate is invalid
    """
    if sampling_rate is None:
        return
    _validate_sampling_rate_type(sampling_rate)
    _validate_sampling_rate_range(sampling_rate)


def _validate_sampling_rate_type(sampling_rate: Any) -> None:
    """Validate sampling rate type."""
    # bool is a subclass of int
    if isinstance(sampling_rate, bool) or not isinstance(sampling_rate, (int, float)):
        raise InvalidConfiguration(ERROR_SAMPLING_RATE_TYPE.format(type_name=type(sampling_rate).__name__))


def _validate_sampling_rate_range(sampling_rate: float) -> None:
    """Validate sampling rate range (NaN fails both comparisons)."""
    if not MIN_SAMPLING_RATE <= sampling_rate <= MAX_SAMPLING_RATE:
        raise InvalidConfiguration(ERROR_SAMPLING_RATE_RANGE.format(value=sampling_rate))


def validate_format(output_format: Any, format_type: type[Enum]) -> None:
    """Validate that the output format is a member of the format enum."""
    if not isinstance(output_format, format_type):
        names = ", ".join(str(choice.value) for choice in format_type)
        raise InvalidConfiguration(ERROR_FORMAT_INVALID.format(choices=names, value=output_format))


def validate_callback(name: str, callback: Callable[..., Any] | None) -> None:
    """Validate an optional (kind, details) callback.

    The callback must be callable and its signature must bind exactly two
    positional arguments. Builtins without an introspectable signature are
    accepted as long as they are callable.

    Args:
        name: Configuration field name used in error messages
        callback: Callback to validate

    Raises:
        InvalidConfiguration: If the callback is not usable
    """
    if callback is None:
        return
    if not callable(callback):
        raise InvalidConfiguration(ERROR_CALLBACK_NOT_CALLABLE.format(name=name, type_name=type(callback).__name__))

    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return

    try:
        signature.bind(*([None] * CALLBACK_ARITY))
    except TypeError as e:
        raise InvalidConfiguration(ERROR_CALLBACK_ARITY.format(name=name)) from e


def validate_kinds(name: str, kinds: Any, kind_type: type) -> None:
    """Validate a set of event kinds."""
    if not isinstance(kinds, (set, frozenset)):
        raise InvalidConfiguration(ERROR_KINDS_INVALID.format(name=name, value=kinds))
    for kind in kinds:
        if not isinstance(kind, kind_type):
            raise InvalidConfiguration(ERROR_KINDS_INVALID.format(name=name, value=kind))


def validate_sink(sink: Any) -> None:
    """Validate that the sink exposes accept(output)."""
    if sink is None:
        return
    if not callable(getattr(sink, "accept", None)):
        raise InvalidConfiguration(ERROR_SINK_INVALID.format(type_name=type(sink).__name__))


def validate_seed(seed: Any) -> None:
    """Validate the deterministic sampling seed."""
    if seed is None:
        return
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise InvalidConfiguration(ERROR_SEED_INVALID.format(type_name=type(seed).__name__))
