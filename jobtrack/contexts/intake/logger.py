"""
Intake context logger.

Provides logging interface for the intake context with automatic [intake] prefix.
All intake modules should import from this module, not from utils.logger directly.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from jobtrack.utils.event_logging import log_parse_event
from jobtrack.utils.logger import setup_logger as _setup_logger

load_dotenv()

CONTEXT_PREFIX = "[intake]"
EVENT_SOURCE = "intake"

# Timing thresholds (ms) above which a parse phase is reported as slow
SLOW_PREPARATION_MS = 10.0
SLOW_RESPONSE_PROCESSING_MS = 50.0


def setup_intake_logger(log_dir: Path, console_level: str = "INFO") -> Path:
    """
    Setup logger for intake context.

    Configures loguru with provenance tracking and intake-specific context.

    Args:
        log_dir: Directory for this parsing session
        console_level: Minimum level shown on the console

    Returns:
        Path to log file

    Example:
        from jobtrack.contexts.intake.logger import setup_intake_logger

        log_file = setup_intake_logger(log_dir)
    """
    return _setup_logger(
        context_name="intake",
        log_dir=log_dir,
        extra_provenance={"LLM provider": os.getenv("LLM_PROVIDER", "cerebras")},
        console_level=console_level,
    )


# Wrapper functions with automatic [intake] prefix


def _log_info(message: str) -> None:
    """Log info message with [intake] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [intake] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [intake] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [intake] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [intake] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level intake-specific logging helpers


def log_parse_start(description_length: int, provider_name: str) -> None:
    """Log start of a parse operation."""
    _log_info(f"Parsing job description ({description_length} chars) with {provider_name}")


def log_parse_result(result) -> None:
    """
    Log the outcome of a parse operation.

    Args:
        result: ParseResult from ParsingSession.submit()
    """
    if result.cancelled:
        _log_debug("Parse cancelled or superseded; outcome discarded")
    elif result.success:
        record = result.record
        _log_success(f"Parsed: {record.role} @ {record.company} ({len(record.skills)} skills)")
    else:
        _log_error(f"Parse failed ({result.error.kind.value}): {result.error.message}")


def log_retry(kind, delay_s: float, attempt: int, total_attempts: int) -> None:
    """Log a retry decision in the coordinator."""
    _log_warning(
        f"{kind.value}, retrying in {delay_s:.1f}s... (attempt {attempt + 1}/{total_attempts})"
    )
    log_parse_event(
        event_type="retry_scheduled",
        source=EVENT_SOURCE,
        kind=kind.value,
        delay_ms=int(delay_s * 1000),
        attempt=attempt,
    )


def log_recovery_strategy(strategy: str, raw_length: int) -> None:
    """
    Record which response-recovery strategy produced the record.

    "direct" is the expected path and only logged at debug level. Any other
    strategy means the service returned malformed output.
    """
    if strategy == "direct":
        _log_debug(f"Response decoded directly ({raw_length} chars)")
    elif strategy == "fallback":
        _log_warning(f"All recovery strategies failed ({raw_length} chars); using default record")
    else:
        _log_info(f"Malformed response recovered via {strategy} ({raw_length} chars)")

    log_parse_event(
        event_type="recovery_strategy",
        source=EVENT_SOURCE,
        strategy=strategy,
        raw_length=raw_length,
    )


def log_classified_error(error) -> None:
    """
    Log a structured diagnostic for a classified error.

    Args:
        error: JobParsingError
    """
    context = dict(error.context)
    if error.kind.value == "abort_error":
        _log_debug(f"{error.kind.value}: {error.message}")
    else:
        _log_error(f"{error.kind.value}: {error.message}")
    if context:
        _log_debug(f"  Context: {context}")

    log_parse_event(
        event_type="error_classified",
        source=EVENT_SOURCE,
        kind=error.kind.value,
        message=error.message,
        context=context,
    )


def log_metrics(metrics) -> None:
    """
    Log timing metrics for a parse operation.

    Args:
        metrics: ParsingMetrics
    """
    _log_debug(f"Total time: {metrics.total_ms:.2f}ms ({metrics.attempts} attempt(s))")
    _log_debug(f"  Request preparation: {metrics.request_preparation_ms:.2f}ms")
    _log_debug(f"  API call: {metrics.api_call_ms:.2f}ms")
    _log_debug(f"  Response processing: {metrics.response_processing_ms:.2f}ms")

    if metrics.request_preparation_ms > SLOW_PREPARATION_MS:
        _log_warning(f"Request preparation took {metrics.request_preparation_ms:.2f}ms")
    if metrics.response_processing_ms > SLOW_RESPONSE_PROCESSING_MS:
        _log_warning(f"Response processing took {metrics.response_processing_ms:.2f}ms")
