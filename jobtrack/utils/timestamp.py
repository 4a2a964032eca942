"""Timestamps for the diagnostic event log."""

from datetime import datetime
from typing import Optional

# (seconds per unit, suffix), largest first
_RELATIVE_UNITS = ((86400, "d"), (3600, "h"), (60, "m"), (1, "s"))


def now_exact() -> str:
    """Current local time as an ISO 8601 string with microseconds."""
    return datetime.now().isoformat()


def format_timestamp(
    iso_timestamp: str, relative: bool = False, now: Optional[datetime] = None
) -> str:
    """
    Render an event timestamp for tail_events.py.

    Absolute form is "2025-11-13 18:45:40"; relative form is the largest whole
    unit, e.g. "45s ago", "3h ago" or "2d from now". Unparseable input is
    returned unchanged.
    """
    try:
        when = datetime.fromisoformat(iso_timestamp)
    except (TypeError, ValueError):
        return iso_timestamp

    if not relative:
        return when.strftime("%Y-%m-%d %H:%M:%S")

    elapsed = int(((now or datetime.now()) - when).total_seconds())
    suffix = "ago" if elapsed >= 0 else "from now"
    elapsed = abs(elapsed)
    for unit_seconds, unit in _RELATIVE_UNITS:
        if elapsed >= unit_seconds or unit == "s":
            return f"{elapsed // unit_seconds}{unit} {suffix}"
