"""Shared fixtures: fake LLM provider and a recording backoff wait."""

import threading

import pytest

from jobtrack.utils import event_logging
from jobtrack.utils.llm import LLMResponse


class FakeProvider:
    """
    Scripted stand-in for an LLMProvider.

    Each call consumes the next scripted item (the last one repeats):
    - str or None: returned as response content
    - BaseException: raised
    - callable: called with (system_prompt, user_prompt) and its result used
      as an item
    """

    name = "fake/test-model"
    model = "test-model"

    def __init__(self, *script):
        self.script = list(script) or ["{}"]
        self.calls = []
        self._lock = threading.Lock()

    def complete(self, system_prompt, user_prompt, options=None):
        with self._lock:
            self.calls.append((system_prompt, user_prompt, options))
            item = self.script.pop(0) if len(self.script) > 1 else self.script[0]

        if callable(item) and not isinstance(item, BaseException):
            item = item(system_prompt, user_prompt)
        if isinstance(item, BaseException):
            raise item
        return LLMResponse(content=item, model=self.model)


class RecordingWait:
    """Backoff wait that records delays instead of sleeping."""

    def __init__(self, on_wait=None):
        self.delays = []
        self.on_wait = on_wait

    def __call__(self, seconds, token):
        self.delays.append(seconds)
        if self.on_wait is not None:
            self.on_wait(token)
        return token.cancelled


@pytest.fixture(autouse=True)
def no_event_file(monkeypatch):
    """Keep tests from appending to a real PARSE_EVENTS_FILE."""
    monkeypatch.setattr(event_logging, "PARSE_EVENTS_FILE", None)


@pytest.fixture
def fake_provider():
    """Factory: fake_provider(item1, item2, ...) -> FakeProvider."""
    return FakeProvider


@pytest.fixture
def recording_wait():
    return RecordingWait()
