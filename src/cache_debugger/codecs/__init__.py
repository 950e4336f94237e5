"""Value normalization for structured event output."""

from .normalizers import normalize_for_json

__all__ = ["normalize_for_json"]
