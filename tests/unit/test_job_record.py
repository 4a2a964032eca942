"""Unit tests for JobRecord coercion, validation and form helpers."""

import dataclasses

import pytest

from jobtrack.contexts.intake.job_record import (
    DEFAULT_JOB_RECORD,
    JobFormData,
    JobRecord,
    coerce_job_record,
    is_valid_form_data,
    is_valid_job_data,
    merge_job_record,
    sanitize_job_record,
    to_form_data,
)

RECORD = JobRecord(
    role="Software Engineer",
    company="Acme",
    location="Toronto, Ontario",
    experience_required="3-5 years",
    skills=("React", "Node"),
    remote=True,
    notes="Great benefits, remote role.",
)


@pytest.mark.unit
def test_default_record_values():
    assert DEFAULT_JOB_RECORD.role == "Unknown Role"
    assert DEFAULT_JOB_RECORD.company == "Unknown Company"
    assert DEFAULT_JOB_RECORD.location == "Not specified"
    assert DEFAULT_JOB_RECORD.experience_required == "Not specified"
    assert DEFAULT_JOB_RECORD.skills == ()
    assert DEFAULT_JOB_RECORD.remote is False
    assert DEFAULT_JOB_RECORD.notes == "No additional notes"


@pytest.mark.unit
def test_record_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        RECORD.role = "Manager"


@pytest.mark.unit
def test_to_dict_uses_wire_keys():
    data = RECORD.to_dict()

    assert data == {
        "role": "Software Engineer",
        "company": "Acme",
        "location": "Toronto, Ontario",
        "experienceRequired": "3-5 years",
        "skills": ["React", "Node"],
        "remote": True,
        "notes": "Great benefits, remote role.",
    }
    assert coerce_job_record(data) == RECORD


@pytest.mark.unit
def test_coerce_empty_mapping_is_default():
    assert coerce_job_record({}) == DEFAULT_JOB_RECORD


@pytest.mark.unit
def test_remote_requires_real_boolean():
    assert coerce_job_record({"remote": "true"}).remote is False
    assert coerce_job_record({"remote": 1}).remote is False
    assert coerce_job_record({"remote": True}).remote is True


@pytest.mark.unit
def test_is_valid_job_data():
    assert is_valid_job_data(RECORD.to_dict())
    assert not is_valid_job_data(None)
    assert not is_valid_job_data({**RECORD.to_dict(), "role": "  "})
    assert not is_valid_job_data({**RECORD.to_dict(), "remote": "yes"})
    assert not is_valid_job_data({**RECORD.to_dict(), "skills": ["Go", 3]})
    assert not is_valid_job_data({**RECORD.to_dict(), "notes": None})


@pytest.mark.unit
def test_sanitize_trims_and_defaults():
    messy = JobRecord(
        role="  Engineer ",
        company="",
        location=" Montreal, Quebec",
        experience_required="",
        skills=(" Python ", "", "SQL"),
        remote=False,
        notes="  ",
    )

    clean = sanitize_job_record(messy)

    assert clean.role == "Engineer"
    assert clean.company == DEFAULT_JOB_RECORD.company
    assert clean.location == "Montreal, Quebec"
    assert clean.experience_required == DEFAULT_JOB_RECORD.experience_required
    assert clean.skills == ("Python", "SQL")
    assert clean.notes == DEFAULT_JOB_RECORD.notes


@pytest.mark.unit
def test_merge_applies_updates_and_sanitizes():
    skills = ["Go", "Rust", "C", "Java", "Kotlin", "Swift", "Zig"]
    merged = merge_job_record(RECORD, company=" Acme Labs ", skills=skills)

    assert merged.company == "Acme Labs"
    assert len(merged.skills) == 6
    assert merged.role == RECORD.role
    assert RECORD.company == "Acme"


@pytest.mark.unit
def test_merge_unknown_field_raises():
    with pytest.raises(TypeError):
        merge_job_record(RECORD, salary="100k")


@pytest.mark.unit
def test_to_form_data():
    form = to_form_data(RECORD, folder_id="folder-7")

    assert form == JobFormData(
        role="Software Engineer",
        company="Acme",
        location="Toronto, Ontario",
        experience_required="3-5 years",
        skills="React, Node",
        remote=True,
        notes="Great benefits, remote role.",
        folder_id="folder-7",
        job_posting_url="",
    )
    assert is_valid_form_data(form)


@pytest.mark.unit
def test_is_valid_form_data_rejects_wrong_types():
    data = dataclasses.asdict(to_form_data(RECORD))

    assert is_valid_form_data(data)
    assert not is_valid_form_data({**data, "skills": ["React"]})
    assert not is_valid_form_data({**data, "remote": "true"})
    assert not is_valid_form_data({k: v for k, v in data.items() if k != "folder_id"})
    assert not is_valid_form_data("role=Engineer")
