"""
Diagnostic event logging utilities for JOBTRACK.

Provides a uniform interface for recording parsing events (recovery strategy
used, classified errors, retries) to a JSON Lines file for monitoring the
reliability of the upstream generation service.

For detailed within-context logging, use jobtrack.utils.logger instead.

The event log is enabled by setting PARSE_EVENTS_FILE. When it is unset,
events are only emitted to loguru at DEBUG level.

Usage:
    from jobtrack.utils.event_logging import log_parse_event

    log_parse_event(
        event_type="recovery_strategy",
        source="intake",
        strategy="object_span",
        raw_length=412,
    )
"""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from jobtrack.utils.timestamp import now_exact

load_dotenv()
_events_file = os.getenv("PARSE_EVENTS_FILE")
PARSE_EVENTS_FILE: Optional[Path] = Path(_events_file) if _events_file else None


def log_parse_event(event_type: str, source: str, **extra_fields) -> None:
    """
    Log an event to the diagnostic event log.

    Events are appended in JSON Lines format (one JSON object per line), which
    allows streaming processing and filtering by event_type or source.

    This function never raises: the event log is a monitoring aid and must not
    break a parse. Unserializable values are stringified; I/O failures are
    reported as a loguru warning.

    Args:
        event_type: Type of event (e.g., "recovery_strategy", "error_classified")
        source: Event source (e.g., "intake", "cli")
        **extra_fields: Additional event-specific fields
    """
    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "source": source,
        **extra_fields,
    }

    try:
        line = json.dumps(event, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize {event_type} event: {e}")
        return

    logger.debug(f"event {line}")

    if PARSE_EVENTS_FILE is None:
        return

    try:
        PARSE_EVENTS_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(PARSE_EVENTS_FILE, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        logger.warning(f"Could not write {event_type} event to {PARSE_EVENTS_FILE}: {e}")


def get_recent_events(n: int = 10, event_type: Optional[str] = None) -> list[dict]:
    """
    Get the last n events from the event log, optionally filtered by type.

    Args:
        n: Number of recent events to return (default: 10)
        event_type: Filter to only events of this type (optional)

    Returns:
        List of event dicts (most recent last). Empty if the log is disabled
        or does not exist yet.

    Example:
        # Last 20 classified errors
        events = get_recent_events(20, event_type="error_classified")
    """
    if PARSE_EVENTS_FILE is None or not PARSE_EVENTS_FILE.exists():
        return []

    events = []
    with open(PARSE_EVENTS_FILE, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if len(events) > n else events
