"""
Request coordination for job posting extraction.

RequestCoordinator owns the call to the generation service for one parse
operation. It is the only component that decides between retrying and
surfacing a failure:

- only kinds in RetryPolicy.retryable_kinds are retried (network/API by default)
- attempts are sequential, separated by an exponential backoff delay
- cancellation is checked before the call, while waiting for it, after it,
  after reading the content and during every backoff delay; once the token is
  cancelled the outcome is ABORT_ERROR and no further attempt is made
- each call runs on its own worker thread; an abandoned call is left to finish
  in the background and its outcome is dropped
"""

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from jobtrack.contexts.intake.cancellation import CancellationToken
from jobtrack.contexts.intake.exceptions import (
    RETRYABLE_KINDS,
    ErrorKind,
    JobParsingError,
    classify,
    is_retryable,
)
from jobtrack.contexts.intake.logger import _log_debug, log_retry
from jobtrack.contexts.intake.prompts import build_system_prompt
from jobtrack.utils.llm import (
    DEFAULT_PROVIDER,
    LLMProvider,
    LLMResponse,
    RequestOptions,
    get_provider,
)

# Retry configuration defaults
DEFAULT_MAX_ATTEMPTS = 2
BASE_DELAY_MS = 1000

def exponential_backoff_ms(attempt: int, base_delay_ms: int = BASE_DELAY_MS) -> int:
    """Delay before retrying after a failed attempt: 1000ms, 2000ms, 4000ms, ..."""
    return base_delay_ms * (2**attempt)


@dataclass(frozen=True)
class Completion:
    """Raw completion text and the number of calls it took."""

    text: str
    attempts: int


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry policy.

    Attributes:
        max_attempts: Retries after the initial attempt (total calls = max_attempts + 1)
        backoff_schedule_ms: Maps the 0-based index of the failed attempt to a delay in ms
        retryable_kinds: Error kinds eligible for another attempt
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_schedule_ms: Callable[[int], int] = exponential_backoff_ms
    retryable_kinds: frozenset = RETRYABLE_KINDS

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got: {self.max_attempts}")

    @property
    def total_attempts(self) -> int:
        return self.max_attempts + 1

    def delay_seconds(self, attempt: int) -> float:
        return self.backoff_schedule_ms(attempt) / 1000.0

    def is_retryable(self, error: JobParsingError) -> bool:
        return is_retryable(error, self.retryable_kinds)


DEFAULT_RETRY_POLICY = RetryPolicy()


def _wait_on_token(seconds: float, token: CancellationToken) -> bool:
    """Default backoff wait: sleeps on the token. Returns True if cancelled."""
    return token.wait(seconds)


def _abort(message: str) -> JobParsingError:
    return JobParsingError(ErrorKind.ABORT_ERROR, message)


class RequestCoordinator:
    """
    Retrying, cancellable chat-completion call.

    Args:
        provider: LLMProvider to call (default: shared provider from get_provider())
        policy: RetryPolicy (default: 2 retries, 1s/2s backoff, network/API retryable)
        options: Generation parameters sent with each request
        wait: Backoff sleeper wait(seconds, token) -> cancelled; default sleeps on the token
        provider_name: Provider to resolve lazily when provider is None
        model: Model to resolve lazily when provider is None

    Example:
        coordinator = RequestCoordinator(policy=RetryPolicy(max_attempts=3))
        raw_text = coordinator.execute(posting, CancellationToken())
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        options: Optional[RequestOptions] = None,
        wait: Optional[Callable[[float, CancellationToken], bool]] = None,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self._provider = provider
        self.provider_name = provider_name
        self.model = model
        self.policy = policy
        self.options = options or RequestOptions()
        self._wait = wait or _wait_on_token

    @property
    def provider(self) -> LLMProvider:
        """Provider in use, resolved on first access (raises LLMConfigurationError)."""
        if self._provider is None:
            self._provider = get_provider(self.provider_name, self.model)
        return self._provider

    @property
    def provider_label(self) -> str:
        """Name for logs, without resolving the provider."""
        if self._provider is not None:
            return self._provider.name
        return self.provider_name or os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER)

    def execute(self, input_text: str, token: CancellationToken) -> str:
        """
        Obtain raw completion text for a job posting.

        Args:
            input_text: Raw job posting
            token: Cancellation token of this operation

        Returns:
            Raw completion text (not yet parsed)

        Raises:
            JobParsingError: Classified failure (ABORT_ERROR when cancelled)
        """
        return self.complete(input_text, token).text

    def complete(self, input_text: str, token: CancellationToken) -> Completion:
        """
        Same as execute(), also reporting how many calls were made.

        The attempt count belongs to this call only, so concurrent or
        superseded operations sharing the coordinator never see each other's.
        """
        if not isinstance(input_text, str) or not input_text.strip():
            raise classify(
                JobParsingError(
                    ErrorKind.VALIDATION_ERROR,
                    "Job description cannot be empty",
                    context={
                        "description_length": len(input_text) if isinstance(input_text, str) else 0
                    },
                )
            )

        if token.cancelled:
            raise classify(_abort("Request was aborted before starting"), token)

        total_attempts = self.policy.total_attempts
        for attempt in range(total_attempts):
            context = {"attempt": attempt, "description_length": len(input_text)}

            try:
                return Completion(self._attempt(input_text, token, attempt), attempt + 1)
            except Exception as e:
                error = classify(e, token, context)
                is_last = attempt == total_attempts - 1
                if (
                    error.kind is ErrorKind.ABORT_ERROR
                    or is_last
                    or not self.policy.is_retryable(error)
                ):
                    raise error from e

            delay_s = self.policy.delay_seconds(attempt)
            log_retry(error.kind, delay_s, attempt, total_attempts)
            if self._wait(delay_s, token) or token.cancelled:
                raise classify(_abort("Request was aborted during retry backoff"), token, context)

        # Unreachable: every iteration returns or raises
        raise classify(
            JobParsingError(ErrorKind.UNKNOWN_ERROR, "Parsing failed after all retry attempts")
        )

    def _attempt(self, input_text: str, token: CancellationToken, attempt: int) -> str:
        """Make one call and return its content, checking the token around it."""
        system_prompt = build_system_prompt(input_text)
        provider = self.provider

        if token.cancelled:
            raise _abort("Request was aborted during preparation")

        _log_debug(f"Attempt {attempt + 1}/{self.policy.total_attempts} via {provider.name}")
        response = self._call_interruptibly(provider, system_prompt, input_text, token)

        if token.cancelled:
            raise _abort("Request was aborted during processing")

        content = response.content
        if not isinstance(content, str) or not content.strip():
            raise JobParsingError(
                ErrorKind.API_ERROR,
                "No response content from AI service",
                context={"attempt": attempt, "response_structure": "missing_content"},
            )

        if token.cancelled:
            raise _abort("Request was aborted while reading the response")

        return content

    def _call_interruptibly(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_prompt: str,
        token: CancellationToken,
    ) -> LLMResponse:
        """
        Run provider.complete() on its own worker and wait for it or for cancellation.

        A cancelled wait abandons the call: its eventual result or error is dropped.
        Each call gets a fresh single-thread executor, so calls still running
        after being abandoned never delay the next operation.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="jobtrack-llm")
        try:
            future: Future = executor.submit(
                provider.complete, system_prompt, user_prompt, self.options
            )
        finally:
            executor.shutdown(wait=False)

        wake = threading.Event()
        future.add_done_callback(lambda _: wake.set())
        unregister = token.on_cancel(wake.set)
        try:
            wake.wait()
        finally:
            unregister()

        if token.cancelled:
            future.cancel()
            raise _abort("Request was aborted while waiting for the AI service")

        return future.result()
