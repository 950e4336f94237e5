"""Shared constants and validation rules."""

from .validators import (
    validate_callback,
    validate_flag,
    validate_format,
    validate_kinds,
    validate_sampling_rate,
    validate_seed,
    validate_sink,
)

__all__ = [
    "validate_callback",
    "validate_flag",
    "validate_format",
    "validate_kinds",
    "validate_sampling_rate",
    "validate_seed",
    "validate_sink",
]
