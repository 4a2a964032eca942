"""Unit tests for parse timing metrics."""

import pytest

from jobtrack.contexts.intake.metrics import MetricsHistory, ParseTimer, ParsingMetrics


def metrics(total_ms, attempts=1):
    return ParsingMetrics(
        request_preparation_ms=1.0,
        api_call_ms=total_ms - 2.0,
        response_processing_ms=1.0,
        total_ms=total_ms,
        attempts=attempts,
    )


@pytest.mark.unit
def test_timer_phases_sum_to_total():
    timer = ParseTimer()
    timer.mark("api_call_start")
    timer.mark("api_call_end")
    timer.mark("response_processed")

    result = timer.finish(attempts=2)

    assert result.attempts == 2
    parts = result.request_preparation_ms + result.api_call_ms + result.response_processing_ms
    assert parts <= result.total_ms + 1e-6
    assert min(result.request_preparation_ms, result.api_call_ms) >= 0.0


@pytest.mark.unit
def test_timer_missing_marks_do_not_fail():
    result = ParseTimer().finish()
    assert result.total_ms >= 0.0
    assert result.api_call_ms >= 0.0


@pytest.mark.unit
def test_history_keeps_last_entries():
    history = MetricsHistory(max_entries=3)
    for total in (10.0, 20.0, 30.0, 40.0):
        history.record(metrics(total))

    assert len(history) == 3
    assert [m.total_ms for m in history.entries()] == [20.0, 30.0, 40.0]


@pytest.mark.unit
def test_history_average():
    history = MetricsHistory()
    assert history.average() is None

    history.record(metrics(10.0, attempts=1))
    history.record(metrics(30.0, attempts=3))
    average = history.average()

    assert average.total_ms == 20.0
    assert average.api_call_ms == 18.0
    assert average.attempts == 2

    history.clear()
    assert len(history) == 0
