"""Display helpers for Cloud PC fields."""

from __future__ import annotations

from datetime import datetime

EMPTY_PLACEHOLDER = "—"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def format_grace_end(value: datetime | str | None, *, empty: str = "") -> str:
    """Format a grace period end timestamp.

    Parsed timestamps render as ``YYYY-MM-DD HH:MM``; values Graph returned in
    an unparsable shape are shown verbatim.

    Examples:
        >>> format_grace_end(datetime(2024, 5, 1, 13, 45))
        '2024-05-01 13:45'
        >>> format_grace_end("soon")
        'soon'
        >>> format_grace_end(None, empty="—")
        '—'
    """
    if value is None or value == "":
        return empty
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    return str(value)


def format_optional(value: object | None) -> str:
    if value is None or value == "":
        return EMPTY_PLACEHOLDER
    return str(value)


def format_bool(value: bool) -> str:
    return "True" if value else "False"


__all__ = [
    "DATETIME_FORMAT",
    "EMPTY_PLACEHOLDER",
    "format_bool",
    "format_grace_end",
    "format_optional",
]
