"""
Event formatting.

format_event is a pure function: it renders one event as a text line or a
JSON document and raises FormattingError on any failure. The subscriber is
responsible for swallowing that error.
"""

import json
from datetime import datetime, timezone
from typing import Any

from .codecs import normalize_for_json
from .config import OutputFormat
from .events import EventDetails, EventKind
from .exceptions import FormattingError

TEXT_TEMPLATE = "{tag} key: {key} ({duration}ms)"


def _kind_label(kind: EventKind | str) -> str:
    if isinstance(kind, EventKind):
        return kind.tag
    return str(kind).upper()


def _event_name(kind: EventKind | str) -> str:
    return kind.value if isinstance(kind, EventKind) else str(kind)


def format_text(kind: EventKind | str, details: EventDetails) -> str:
    """Render an event as a single log line.

    Example:
        ``MISS key: user:1 (0.42ms)``
    """
    line = TEXT_TEMPLATE.format(tag=_kind_label(kind), key=details.key, duration=details.duration_ms)
    if kind == EventKind.EXIST:
        line += f" exists: {str(bool(details.exists)).lower()}"
    elif kind == EventKind.OPERATION_ERROR:
        line += f" error: {details.error_message}"
    return line


def build_payload(kind: EventKind | str, details: EventDetails, timestamp: datetime | None = None) -> dict[str, Any]:
    """Build the structured form of an event.

    The timestamp defaults to the instant the signal was captured.
    """
    when = timestamp or details.captured_at or datetime.now(timezone.utc)
    return {
        "event": _event_name(kind),
        "timestamp": when.isoformat(),
        "details": normalize_for_json(details.to_dict()),
    }


def format_json(kind: EventKind | str, details: EventDetails, timestamp: datetime | None = None) -> str:
    """Render an event as a compact JSON document."""
    return json.dumps(build_payload(kind, details, timestamp), separators=(",", ":"))


def format_event(
    kind: EventKind | str,
    details: EventDetails,
    output_format: OutputFormat = OutputFormat.TEXT,
    *,
    timestamp: datetime | None = None,
) -> str:
    """Render an event in the configured format.

    Args:
        kind: Event kind (unknown string kinds use a generic text template)
        details: Event details
        output_format: Text or JSON
        timestamp: Override for the JSON timestamp

    Returns:
        Formatted output

    Raises:
        FormattingError: If the event cannot be rendered
    """
    try:
        if output_format == OutputFormat.JSON:
            return format_json(kind, details, timestamp)
        if output_format == OutputFormat.TEXT:
            return format_text(kind, details)
    except FormattingError:
        raise
    except Exception as e:
        key = getattr(details, "key", None)
        raise FormattingError(f"Failed to format {_event_name(kind)} event: {e}", key=key) from e

    raise FormattingError(f"Unsupported output format: {output_format!r}", key=getattr(details, "key", None))
