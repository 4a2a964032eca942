"""
Structured job record for the Intake context.

JobRecord is the fixed-shape output of the extraction pipeline. Every field is
always present and type-correct: values that cannot be recovered from the
model output are taken from DEFAULT_JOB_RECORD, field by field.

Also provides the form-ready projection (JobFormData) handed to the job
creation form, plus validation/sanitization helpers used when a record is
edited before it is saved.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

# Business rule: at most this many skills are kept
MAX_SKILLS = 6

# Wire (JSON) key -> JobRecord attribute
WIRE_FIELDS = {
    "role": "role",
    "company": "company",
    "location": "location",
    "experienceRequired": "experience_required",
    "skills": "skills",
    "remote": "remote",
    "notes": "notes",
}


@dataclass(frozen=True)
class JobRecord:
    """
    Job information extracted from a posting.

    Attributes:
        role: Standardized job title (e.g., "Software Engineer")
        company: Hiring company name
        location: "City, Province/State" with no abbreviations
        experience_required: Years of experience, or "Not specified"
        skills: Key skills (max 6), each trimmed and non-empty
        remote: Whether remote work is mentioned
        notes: Summary of responsibilities, requirements and benefits
    """

    role: str
    company: str
    location: str
    experience_required: str
    skills: tuple[str, ...] = ()
    remote: bool = False
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used on the wire."""
        data = {wire: getattr(self, attr) for wire, attr in WIRE_FIELDS.items()}
        data["skills"] = list(self.skills)
        return data


DEFAULT_JOB_RECORD = JobRecord(
    role="Unknown Role",
    company="Unknown Company",
    location="Not specified",
    experience_required="Not specified",
    skills=(),
    remote=False,
    notes="No additional notes",
)


@dataclass(frozen=True)
class JobFormData:
    """
    Form-ready job data for the job creation form.

    Skills are a comma-separated string because the form edits them as text.
    The posting URL starts empty; the user fills it in.
    """

    role: str
    company: str
    location: str
    experience_required: str
    skills: str
    remote: bool
    notes: str
    folder_id: str = ""
    job_posting_url: str = ""


# =============================================================================
# FIELD COERCION
# =============================================================================


def _required_text(value: Any, default: str) -> str:
    """Non-empty string after trimming, else the default."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _optional_text(value: Any, default: str) -> str:
    """String after trimming; empty or wrong-typed falls back to the default."""
    if isinstance(value, str):
        return value.strip() or default
    return default


def _skills(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    """Ordered skills: strings only, trimmed, blanks dropped, max MAX_SKILLS."""
    if not isinstance(value, (list, tuple)):
        return default
    cleaned = [skill.strip() for skill in value if isinstance(skill, str) and skill.strip()]
    return tuple(cleaned[:MAX_SKILLS])


def _flag(value: Any, default: bool) -> bool:
    """Genuine booleans only ("true", 1, etc. are rejected)."""
    return value if isinstance(value, bool) else default


def coerce_job_record(data: Mapping[str, Any]) -> JobRecord:
    """
    Build a JobRecord from a decoded object, one field at a time.

    A missing or wrong-typed field falls back to DEFAULT_JOB_RECORD's value for
    that field only; the other fields are kept. Never raises for mapping input.

    Args:
        data: Decoded JSON object (wire keys, camelCase)

    Returns:
        JobRecord
    """
    default = DEFAULT_JOB_RECORD
    return JobRecord(
        role=_required_text(data.get("role"), default.role),
        company=_required_text(data.get("company"), default.company),
        location=_required_text(data.get("location"), default.location),
        experience_required=_optional_text(
            data.get("experienceRequired"), default.experience_required
        ),
        skills=_skills(data.get("skills"), default.skills),
        remote=_flag(data.get("remote"), default.remote),
        notes=_optional_text(data.get("notes"), default.notes),
    )


# =============================================================================
# VALIDATION AND EDITING HELPERS
# =============================================================================


def is_valid_job_data(data: Any) -> bool:
    """
    Strict check that a decoded object already has the full record shape.

    Unlike coerce_job_record(), nothing is defaulted: role, company and
    location must be non-empty strings, experienceRequired and notes strings,
    remote a boolean and skills a list of strings.
    """
    if not isinstance(data, Mapping):
        return False

    for key in ("role", "company", "location"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            return False
    for key in ("experienceRequired", "notes"):
        if not isinstance(data.get(key), str):
            return False
    if not isinstance(data.get("remote"), bool):
        return False

    skills = data.get("skills")
    return isinstance(skills, list) and all(isinstance(skill, str) for skill in skills)


def sanitize_job_record(record: JobRecord) -> JobRecord:
    """
    Normalize a record: trim text, default empty fields, clean skills.

    Used after manual edits, where fields may have been cleared.
    """
    return coerce_job_record(record.to_dict())


def merge_job_record(base: JobRecord, **updates: Any) -> JobRecord:
    """
    Apply field updates to a record and re-sanitize the result.

    Args:
        base: Record to update
        **updates: JobRecord attribute names and new values

    Returns:
        New sanitized JobRecord

    Raises:
        TypeError: If an update names an unknown field
    """
    if "skills" in updates and isinstance(updates["skills"], list):
        updates["skills"] = tuple(updates["skills"])
    return sanitize_job_record(replace(base, **updates))


def to_form_data(record: JobRecord, folder_id: str = "") -> JobFormData:
    """
    Map a record to the form payload used to create a job application.

    Args:
        record: Parsed job record
        folder_id: Folder the application will be filed under ("" for none)

    Returns:
        JobFormData with skills joined as "a, b, c" and an empty posting URL
    """
    return JobFormData(
        role=record.role,
        company=record.company,
        location=record.location,
        experience_required=record.experience_required,
        skills=", ".join(record.skills),
        remote=record.remote,
        notes=record.notes,
        folder_id=folder_id or "",
        job_posting_url="",
    )


def is_valid_form_data(data: Any) -> bool:
    """Check that an object carries every form field with the right type."""
    text_fields = (
        "role",
        "company",
        "location",
        "experience_required",
        "skills",
        "notes",
        "folder_id",
        "job_posting_url",
    )
    if isinstance(data, JobFormData):
        data = asdict(data)
    if not isinstance(data, Mapping):
        return False
    if not all(isinstance(data.get(name), str) for name in text_fields):
        return False
    return isinstance(data.get("remote"), bool)
