"""
Classified errors for the intake context.

Every failure of a parse operation is mapped to exactly one ErrorKind and
carried as a JobParsingError. The kind decides whether the request coordinator
retries and which fixed message the UI shows.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from jobtrack.contexts.intake.logger import log_classified_error
from jobtrack.utils.llm import LLMConfigurationError, LLMServiceError, LLMTransportError


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    VALIDATION_ERROR = "validation_error"
    ABORT_ERROR = "abort_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN_ERROR = "unknown_error"


# Transient failures that may succeed on a later attempt
RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK_ERROR, ErrorKind.API_ERROR})

# Fixed, user-facing text per kind. Internal messages are never shown to users.
USER_MESSAGES = {
    ErrorKind.NETWORK_ERROR: (
        "Network connection failed. Please check your internet connection and try again."
    ),
    ErrorKind.API_ERROR: "AI service is temporarily unavailable. Please try again in a moment.",
    ErrorKind.VALIDATION_ERROR: (
        "The job description could not be processed. Please try with a different description."
    ),
    ErrorKind.CONFIGURATION_ERROR: "AI service configuration error. Please contact support.",
}
DEFAULT_USER_MESSAGE = "An unexpected error occurred. Please try again."

# Message fragments used to classify plain exceptions raised by lower layers
_NETWORK_HINTS = ("network", "connection", "fetch", "timed out", "timeout")
_CONFIGURATION_HINTS = ("api key", "configuration", "not configured")


class JobParsingError(Exception):
    """
    Exception carrying a classified parse failure.

    Attributes are read-only once constructed.

    Attributes:
        kind: ErrorKind of the failure
        message: Internal description (for logs, not for users)
        cause: The underlying exception, if any
        context: Read-only diagnostic mapping (attempt number, lengths, ...)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        self._kind = kind
        self._message = message
        self._cause = cause
        self._context = MappingProxyType(dict(context or {}))

        parts = [f"[{kind.value}] {message}"]
        if cause is not None:
            parts.append(f"Original error: {cause}")
        super().__init__("\n".join(parts))

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    @property
    def context(self) -> Mapping[str, Any]:
        return self._context

    @property
    def user_message(self) -> str:
        """Fixed human-readable text for this error's kind."""
        return user_message(self._kind)

    def with_context(self, **extra: Any) -> "JobParsingError":
        """Return a copy with additional context merged in (existing keys win)."""
        return JobParsingError(self._kind, self._message, self._cause, {**extra, **self._context})


class ResponseInterpretationError(ValueError):
    """The service's content could not be coerced into a job record."""


def user_message(kind: ErrorKind) -> str:
    """Map an ErrorKind to the fixed message shown to users."""
    return USER_MESSAGES.get(kind, DEFAULT_USER_MESSAGE)


def is_retryable(error: JobParsingError, retryable_kinds=RETRYABLE_KINDS) -> bool:
    """Whether the error represents a transient failure eligible for another attempt."""
    return error.kind in retryable_kinds


def _kind_for(raw_error: BaseException) -> ErrorKind:
    """Determine the ErrorKind of an unclassified exception (cancellation excluded)."""
    if isinstance(raw_error, (LLMTransportError, ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK_ERROR
    if isinstance(raw_error, LLMServiceError):
        return ErrorKind.API_ERROR
    if isinstance(raw_error, LLMConfigurationError):
        return ErrorKind.CONFIGURATION_ERROR
    if isinstance(raw_error, ResponseInterpretationError):
        return ErrorKind.VALIDATION_ERROR

    text = str(raw_error).lower()
    if any(hint in text for hint in _NETWORK_HINTS):
        return ErrorKind.NETWORK_ERROR
    if any(hint in text for hint in _CONFIGURATION_HINTS):
        return ErrorKind.CONFIGURATION_ERROR
    return ErrorKind.UNKNOWN_ERROR


def classify(
    raw_error: BaseException,
    token=None,
    context: Optional[Mapping[str, Any]] = None,
) -> JobParsingError:
    """
    Map any failure to exactly one classified error.

    Priority:
    1. Cancellation requested on the token -> ABORT_ERROR, whatever the cause
    2. Already classified JobParsingError -> unchanged (context merged)
    3. Transport failures -> NETWORK_ERROR
    4. Service rejections -> API_ERROR
    5. Credentials/configuration -> CONFIGURATION_ERROR
    6. Content interpretation -> VALIDATION_ERROR
    7. Anything else -> UNKNOWN_ERROR

    Logs a structured diagnostic for the result. Never raises.

    Args:
        raw_error: The exception to classify
        token: CancellationToken of the operation (optional)
        context: Diagnostic values to attach

    Returns:
        JobParsingError
    """
    context = dict(context or {})

    if token is not None and token.cancelled:
        if isinstance(raw_error, JobParsingError) and raw_error.kind is ErrorKind.ABORT_ERROR:
            error = raw_error.with_context(**context)
        else:
            error = JobParsingError(
                ErrorKind.ABORT_ERROR, "Parsing request was cancelled", raw_error, context
            )
    elif isinstance(raw_error, JobParsingError):
        error = raw_error.with_context(**context)
    else:
        kind = _kind_for(raw_error)
        message = str(raw_error) or type(raw_error).__name__
        error = JobParsingError(kind, f"AI parsing failed: {message}", raw_error, context)

    log_classified_error(error)
    return error
