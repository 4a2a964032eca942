"""
Recovery of a job record from raw model output.

Generated text is usually a clean JSON object, but it may also arrive wrapped
in prose, inside a markdown code block, as a one-element array, or with raw
line breaks inside string values. parse_job_response() tries a fixed sequence
of strategies until one yields a JSON object, then coerces each field
independently. It returns a valid JobRecord for any input and never raises.

Strategies (in order):
    direct       - the trimmed text (code fences removed) is a JSON object
    object_span  - text between the first "{" and the last "}"
    array_span   - text between the first "[" and the last "]", when it is a
                   non-empty array whose first element is an object
    cleanup      - drop everything outside the outermost brackets, collapse
                   line breaks to spaces, decode again
    fallback     - nothing worked; DEFAULT_JOB_RECORD is returned
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from jobtrack.contexts.intake.job_record import DEFAULT_JOB_RECORD, JobRecord, coerce_job_record
from jobtrack.contexts.intake.logger import log_recovery_strategy

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"\s*```$")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class RecoveryOutcome:
    """
    Result of object recovery.

    Attributes:
        data: Decoded JSON object, or None if every strategy failed
        strategy: Name of the strategy that produced data ("fallback" if none)
    """

    data: Optional[dict]
    strategy: str


# =============================================================================
# DECODING HELPERS
# =============================================================================


def _decode(candidate: str) -> Any:
    """json.loads that returns None instead of raising."""
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None


def _as_object(value: Any) -> Optional[dict]:
    """Accept a dict, or the first element of a non-empty list if it is a dict."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _span(text: str, opener: str, closer: str) -> Optional[str]:
    """Substring from the first opener to the last closer (inclusive)."""
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _strip_code_fences(text: str) -> str:
    text = _CODE_FENCE_START.sub("", text)
    return _CODE_FENCE_END.sub("", text)


# =============================================================================
# STRATEGIES
# =============================================================================


def _direct(text: str) -> Optional[dict]:
    value = _decode(_strip_code_fences(text))
    return value if isinstance(value, dict) else None


def _object_span(text: str) -> Optional[dict]:
    candidate = _span(text, "{", "}")
    if candidate is None:
        return None
    value = _decode(candidate)
    return value if isinstance(value, dict) else None


def _array_span(text: str) -> Optional[dict]:
    candidate = _span(text, "[", "]")
    if candidate is None:
        return None
    value = _decode(candidate)
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _cleanup(text: str) -> Optional[dict]:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    ends = [i for i in (text.rfind("}"), text.rfind("]")) if i != -1]
    if not starts or not ends:
        return None

    start, end = min(starts), max(ends)
    if end <= start:
        return None

    candidate = _LINE_BREAKS.sub(" ", text[start : end + 1])
    return _as_object(_decode(candidate))


STRATEGIES: list[tuple[str, Callable[[str], Optional[dict]]]] = [
    ("direct", _direct),
    ("object_span", _object_span),
    ("array_span", _array_span),
    ("cleanup", _cleanup),
]


# =============================================================================
# PUBLIC API
# =============================================================================


def recover_job_object(raw_text: Any) -> RecoveryOutcome:
    """
    Extract a JSON object from raw model output.

    Args:
        raw_text: Completion text (non-string input is treated as unrecoverable)

    Returns:
        RecoveryOutcome naming the strategy that succeeded, or "fallback"
    """
    if not isinstance(raw_text, str):
        return RecoveryOutcome(data=None, strategy="fallback")

    text = raw_text.strip()
    if not text:
        return RecoveryOutcome(data=None, strategy="fallback")

    for name, strategy in STRATEGIES:
        data = strategy(text)
        if data is not None:
            return RecoveryOutcome(data=data, strategy=name)

    return RecoveryOutcome(data=None, strategy="fallback")


def parse_job_response(raw_text: Any) -> JobRecord:
    """
    Turn raw model output into a valid JobRecord.

    Total: returns DEFAULT_JOB_RECORD when no object can be recovered, and
    per-field defaults for fields that are missing or have the wrong type.
    Emits a diagnostic event naming the recovery strategy used.

    Args:
        raw_text: Completion text from the generation service

    Returns:
        JobRecord

    Example:
        >>> parse_job_response('Sure! {"role": "DevOps Engineer"} Hope that helps!').role
        'DevOps Engineer'
    """
    outcome = recover_job_object(raw_text)
    log_recovery_strategy(outcome.strategy, len(raw_text) if isinstance(raw_text, str) else 0)

    if outcome.data is None:
        return DEFAULT_JOB_RECORD
    return coerce_job_record(outcome.data)
