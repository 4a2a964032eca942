"""Unit tests for CancellationToken."""

import threading
import time

import pytest

from jobtrack.contexts.intake.cancellation import CancellationToken


@pytest.mark.unit
def test_cancel_is_one_way_and_idempotent():
    token = CancellationToken()
    calls = []
    token.on_cancel(lambda: calls.append("cancelled"))

    assert not token.cancelled
    token.cancel()
    token.cancel()

    assert token.cancelled
    assert calls == ["cancelled"]


@pytest.mark.unit
def test_callback_runs_immediately_when_already_cancelled():
    token = CancellationToken()
    token.cancel()
    calls = []

    token.on_cancel(lambda: calls.append("late"))

    assert calls == ["late"]


@pytest.mark.unit
def test_unregistered_callback_not_called():
    token = CancellationToken()
    calls = []
    unregister = token.on_cancel(lambda: calls.append("x"))

    unregister()
    token.cancel()

    assert calls == []


@pytest.mark.unit
def test_wait_returns_false_after_full_delay():
    assert CancellationToken().wait(0.01) is False


@pytest.mark.unit
def test_wait_wakes_on_cancel():
    token = CancellationToken()
    threading.Timer(0.02, token.cancel).start()

    started = time.perf_counter()
    assert token.wait(5.0) is True
    assert time.perf_counter() - started < 2.0
