"""
Parsing session: one user-facing parse workflow.

ParsingSession holds the job description being edited, drives the phase
machine, calls the request coordinator and the response parser, and keeps the
error shown to the user. At most one operation is active per session. Starting
a new one cancels the previous token; the superseded operation may still
finish in its own thread, but its outcome is discarded and it never writes
session state.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from jobtrack.contexts.intake.cancellation import CancellationToken
from jobtrack.contexts.intake.exceptions import ErrorKind, JobParsingError, classify
from jobtrack.contexts.intake.job_record import JobRecord
from jobtrack.contexts.intake.logger import log_metrics, log_parse_result, log_parse_start
from jobtrack.contexts.intake.metrics import MetricsHistory, ParseTimer, ParsingMetrics
from jobtrack.contexts.intake.phases import ParsingPhase, ParsingPhaseMachine
from jobtrack.contexts.intake.request_coordinator import RequestCoordinator
from jobtrack.contexts.intake.response_parser import parse_job_response


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of ParsingSession.submit().

    Attributes:
        success: True if a record was produced
        record: Parsed JobRecord (success only)
        error: Classified error (failure only, never ABORT_ERROR)
        cancelled: True if the operation was cancelled or superseded
        metrics: Timings (success only)
    """

    success: bool
    record: Optional[JobRecord] = None
    error: Optional[JobParsingError] = None
    cancelled: bool = False
    metrics: Optional[ParsingMetrics] = None

    @property
    def user_message(self) -> Optional[str]:
        """Text to show the user for a failure, None otherwise."""
        return self.error.user_message if self.error is not None else None


CANCELLED_RESULT = ParseResult(success=False, cancelled=True)


class ParsingSession:
    """
    Stateful parse workflow with cancellation and supersession.

    Args:
        coordinator: RequestCoordinator (default: one built from the environment)
        parser: Raw text -> JobRecord (default: parse_job_response)
        phases: ParsingPhaseMachine to drive (default: a new one)

    Example:
        session = ParsingSession()
        session.phases.subscribe(lambda old, new: render(new))
        result = session.submit(posting_text)
        if result.success:
            fill_form(to_form_data(result.record))
        elif not result.cancelled:
            show(session.error_message)
    """

    def __init__(
        self,
        coordinator: Optional[RequestCoordinator] = None,
        parser: Callable[[str], JobRecord] = parse_job_response,
        phases: Optional[ParsingPhaseMachine] = None,
    ):
        self.coordinator = coordinator or RequestCoordinator()
        self.parser = parser
        self.phases = phases or ParsingPhaseMachine()
        self.metrics = MetricsHistory()

        self._lock = threading.RLock()
        self._token: Optional[CancellationToken] = None
        self._description = ""
        self._error_message: Optional[str] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def description(self) -> str:
        return self._description

    def set_description(self, text: str) -> None:
        with self._lock:
            self._description = text

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def show_error(self) -> bool:
        return self._error_message is not None

    @property
    def is_parsing(self) -> bool:
        return self.phases.is_active

    def dismiss_error(self) -> None:
        with self._lock:
            self._error_message = None

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def submit(self, text: Optional[str] = None) -> ParseResult:
        """
        Parse a job description.

        Blocks until the operation finishes, fails or is cancelled. May be
        called from several threads; the latest call supersedes earlier ones.

        Args:
            text: Description to parse (default: the held description)

        Returns:
            ParseResult. Cancelled or superseded operations return a result
            with cancelled=True and leave session state untouched.
        """
        token, description = self._begin(text)
        timer = ParseTimer()
        log_parse_start(len(description), self.coordinator.provider_label)

        try:
            if not self._advance(token, ParsingPhase.PROCESSING):
                return self._discard()

            timer.mark("api_call_start")
            completion = self.coordinator.complete(description, token)
            timer.mark("api_call_end")

            if not self._advance(token, ParsingPhase.COMPLETING):
                return self._discard()

            record = self.parser(completion.text)
            timer.mark("response_processed")
        except JobParsingError as e:
            return self._fail(token, e)
        except Exception as e:
            return self._fail(token, classify(e, token))

        metrics = timer.finish(attempts=completion.attempts)
        with self._lock:
            if token is not self._token:
                return self._discard()
            self._token = None
            self._description = ""
            self.metrics.record(metrics)
            self.phases.reset()

        result = ParseResult(success=True, record=record, metrics=metrics)
        log_metrics(metrics)
        log_parse_result(result)
        return result

    def cancel(self) -> None:
        """Cancel the active operation (if any) and return to IDLE."""
        with self._lock:
            token, self._token = self._token, None
            if token is not None:
                token.cancel()
            self.phases.reset()

    def reset(self) -> None:
        """Cancel any operation and restore the initial state (metrics are kept)."""
        with self._lock:
            self.cancel()
            self._description = ""
            self._error_message = None

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _begin(self, text: Optional[str]) -> tuple[CancellationToken, str]:
        """Supersede the active operation and enter STARTING with a new token."""
        with self._lock:
            if text is not None:
                self._description = text
            if self._token is not None:
                self._token.cancel()

            token = CancellationToken()
            self._token = token
            self._error_message = None
            self.phases.reset()
            self.phases.advance(ParsingPhase.STARTING)
            return token, self._description

    def _advance(self, token: CancellationToken, phase: ParsingPhase) -> bool:
        """Move to `phase` if `token` is still the active one."""
        with self._lock:
            if token is not self._token or token.cancelled:
                return False
            self.phases.advance(phase)
            return True

    def _fail(self, token: CancellationToken, error: JobParsingError) -> ParseResult:
        with self._lock:
            if error.kind is ErrorKind.ABORT_ERROR or token is not self._token:
                return self._discard()
            self._token = None
            self._error_message = error.user_message
            self.phases.reset()

        result = ParseResult(success=False, error=error)
        log_parse_result(result)
        return result

    def _discard(self) -> ParseResult:
        log_parse_result(CANCELLED_RESULT)
        return CANCELLED_RESULT
