"""
Integration tests for the parsing pipeline.
Tests: ParsingSession -> RequestCoordinator -> fake provider -> recovery parser.
"""

import threading
import time

import pytest

from jobtrack.contexts.intake.exceptions import ErrorKind
from jobtrack.contexts.intake.job_record import DEFAULT_JOB_RECORD, JobRecord, to_form_data
from jobtrack.contexts.intake.parsing_session import ParsingSession
from jobtrack.contexts.intake.phases import ParsingPhase
from jobtrack.contexts.intake.request_coordinator import RequestCoordinator, RetryPolicy
from jobtrack.contexts.intake.response_parser import parse_job_response
from jobtrack.utils.llm import LLMTransportError

POSTING = (
    "Senior Software Engineer II at Acme (Remote, Toronto). "
    "Requires 3-5 years React/Node. Great benefits."
)
ACME_JSON = (
    '{"role":"Software Engineer","company":"Acme","location":"Toronto, Ontario",'
    '"experienceRequired":"3-5 years","skills":["React","Node"],"remote":true,'
    '"notes":"Great benefits, remote role."}'
)
BETA_JSON = '{"role": "Data Engineer", "company": "Beta Inc"}'


def make_session(provider, wait=None, parser=parse_job_response):
    coordinator = RequestCoordinator(
        provider=provider,
        policy=RetryPolicy(max_attempts=2),
        wait=wait or (lambda seconds, token: token.cancelled),
    )
    return ParsingSession(coordinator=coordinator, parser=parser)


def run_in_thread(session, text):
    """Start session.submit(text) in a thread; returns (thread, outcome dict)."""
    outcome = {}
    thread = threading.Thread(target=lambda: outcome.update(result=session.submit(text)))
    thread.start()
    return thread, outcome


@pytest.mark.integration
def test_round_trip_example(fake_provider):
    session = make_session(fake_provider(ACME_JSON))
    phases = []
    session.phases.subscribe(lambda old, new: phases.append(new))

    result = session.submit(POSTING)

    assert result.success
    assert result.record == JobRecord(
        role="Software Engineer",
        company="Acme",
        location="Toronto, Ontario",
        experience_required="3-5 years",
        skills=("React", "Node"),
        remote=True,
        notes="Great benefits, remote role.",
    )
    assert len(result.record.skills) == 2
    assert result.error is None
    assert result.user_message is None
    assert result.metrics.attempts == 1

    assert phases == [
        ParsingPhase.STARTING,
        ParsingPhase.PROCESSING,
        ParsingPhase.COMPLETING,
        ParsingPhase.IDLE,
    ]
    assert session.description == ""
    assert not session.is_parsing
    assert not session.show_error
    assert len(session.metrics) == 1

    form = to_form_data(result.record, folder_id="applications")
    assert form.skills == "React, Node"


@pytest.mark.integration
def test_malformed_response_example(fake_provider):
    provider = fake_provider(
        'Sure! Here is the data: {"role":"DevOps Engineer","company":"Beta Inc"} Hope that helps!'
    )
    session = make_session(provider)

    result = session.submit("DevOps Engineer at Beta Inc.")

    assert result.success
    assert result.record.role == "DevOps Engineer"
    assert result.record.company == "Beta Inc"
    for field in ("location", "experience_required", "skills", "remote", "notes"):
        assert getattr(result.record, field) == getattr(DEFAULT_JOB_RECORD, field)


@pytest.mark.integration
def test_unparseable_content_still_succeeds_with_default_record(fake_provider):
    session = make_session(fake_provider("I'm sorry, I cannot help with that."))

    result = session.submit(POSTING)

    assert result.success
    assert result.record == DEFAULT_JOB_RECORD


@pytest.mark.integration
def test_exhausted_retries_surface_user_message(fake_provider, recording_wait):
    provider = fake_provider(LLMTransportError("connection reset"))
    session = make_session(provider, wait=recording_wait)
    phases = []
    session.phases.subscribe(lambda old, new: phases.append(new))

    result = session.submit(POSTING)

    assert not result.success
    assert not result.cancelled
    assert result.error.kind is ErrorKind.NETWORK_ERROR
    assert result.user_message == (
        "Network connection failed. Please check your internet connection and try again."
    )
    assert len(provider.calls) == 3
    assert recording_wait.delays == [1.0, 2.0]

    assert session.show_error
    assert session.error_message == result.user_message
    assert session.description == POSTING
    assert phases[-1] is ParsingPhase.IDLE
    assert ParsingPhase.COMPLETING not in phases
    assert len(session.metrics) == 0

    session.dismiss_error()
    assert not session.show_error


@pytest.mark.integration
def test_resubmit_uses_held_description(fake_provider):
    provider = fake_provider(LLMTransportError("connection reset"), ACME_JSON)
    session = make_session(provider)
    session.coordinator.policy = RetryPolicy(max_attempts=0)

    assert not session.submit(POSTING).success
    result = session.submit()

    assert result.success
    assert provider.calls[1][1] == POSTING
    assert not session.show_error


@pytest.mark.integration
def test_empty_description_is_validation_error(fake_provider):
    provider = fake_provider(ACME_JSON)
    session = make_session(provider)
    session.set_description("   ")

    result = session.submit()

    assert result.error.kind is ErrorKind.VALIDATION_ERROR
    assert session.error_message == (
        "The job description could not be processed. Please try with a different description."
    )
    assert provider.calls == []


@pytest.mark.integration
def test_supersession_discards_pending_call(fake_provider):
    """A second submission while the first is in flight: only the second is observed."""
    started = threading.Event()
    release = threading.Event()

    def slow_first_call(system_prompt, user_prompt):
        started.set()
        release.wait(5)
        return ACME_JSON

    session = make_session(fake_provider(slow_first_call, BETA_JSON))

    first_thread, first = run_in_thread(session, "first posting")
    assert started.wait(5)

    second = session.submit("second posting")
    release.set()
    first_thread.join(5)

    assert first["result"].cancelled
    assert not first["result"].success
    assert first["result"].error is None

    assert second.success
    assert second.record.role == "Data Engineer"
    assert session.phases.phase is ParsingPhase.IDLE
    assert not session.show_error
    assert session.description == ""
    assert len(session.metrics) == 1


@pytest.mark.integration
def test_supersession_discards_result_finishing_late(fake_provider):
    """The first operation completes its parse after being superseded; it is ignored."""
    parsing_first = threading.Event()
    release = threading.Event()
    seen_records = []

    def parser(raw_text):
        record = parse_job_response(raw_text)
        if record.company == "Acme":
            parsing_first.set()
            release.wait(5)
        seen_records.append(record)
        return record

    session = make_session(fake_provider(ACME_JSON, BETA_JSON), parser=parser)

    first_thread, first = run_in_thread(session, "first posting")
    assert parsing_first.wait(5)

    second = session.submit("second posting")
    release.set()
    first_thread.join(5)

    assert second.success
    assert second.record.company == "Beta Inc"
    assert first["result"].cancelled
    assert {record.company for record in seen_records} == {"Acme", "Beta Inc"}
    assert len(session.metrics) == 1
    assert session.phases.phase is ParsingPhase.IDLE


@pytest.mark.integration
def test_cancel_discards_operation_silently(fake_provider):
    started = threading.Event()
    release = threading.Event()

    def slow_call(system_prompt, user_prompt):
        started.set()
        release.wait(5)
        return ACME_JSON

    session = make_session(fake_provider(slow_call))
    thread, outcome = run_in_thread(session, POSTING)
    assert started.wait(5)

    session.cancel()
    thread.join(5)
    release.set()

    assert outcome["result"].cancelled
    assert not session.is_parsing
    assert not session.show_error
    assert session.description == POSTING


@pytest.mark.integration
def test_cancel_during_backoff(fake_provider):
    provider = fake_provider(LLMTransportError("connection reset"))
    session = make_session(provider, wait=lambda seconds, token: token.wait(5.0))

    thread, outcome = run_in_thread(session, POSTING)
    while not provider.calls:
        time.sleep(0.01)
    session.cancel()
    thread.join(5)

    assert outcome["result"].cancelled
    assert len(provider.calls) == 1
    assert not session.show_error


@pytest.mark.integration
def test_reset_restores_initial_state(fake_provider):
    session = make_session(fake_provider(LLMTransportError("connection reset")))
    session.submit(POSTING)
    assert session.show_error

    session.reset()

    assert session.description == ""
    assert not session.show_error
    assert session.phases.phase is ParsingPhase.IDLE
