"""
Prompt template for job posting extraction.

The system prompt has a single substitution point (the posting text). The
posting is also sent as the user message.
"""

# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

SYSTEM_PROMPT_TEMPLATE = """\
Extract the following information from this job description and respond ONLY with a valid JSON object:

Job Description:
{job_description}

Extract these fields:
- role (only the core, standardized job title as it would appear in an HR system, stripping away levels, seniority, numbering, seasons, dates, or extra details; e.g., return "Software Engineer" instead of "Software Engineer I" or "Principal Associate, Software Engineer", and "Software Developer" instead of "Software Developer (Fall 2025)")
- company (company name)
- location (job location in the format "city, province/state" with no abbreviations, e.g., "Toronto, Ontario")
- experienceRequired (years of experience required, otherwise "Not specified")
- skills (array of key skills mentioned, maximum 6)
- remote (boolean - true if remote work is mentioned)
- notes (comprehensive summary that captures ALL important information including responsibilities, requirements, nice-to-haves, benefits, and any other relevant details. Be thorough but concise)

IMPORTANT: Your response MUST be ONLY a valid JSON object. DO NOT include any other text, backticks, or markdown formatting.
IMPORTANT: For the location field, strictly use the format "city, province/state" with no abbreviations (e.g., "Toronto, Ontario", not "Toronto, ON" or "Toronto, Canada")."""


def build_system_prompt(job_description: str) -> str:
    """
    Fill the system prompt template with a job posting.

    Braces inside the posting are left untouched.

    Args:
        job_description: Raw job posting text

    Returns:
        System prompt string
    """
    return SYSTEM_PROMPT_TEMPLATE.replace("{job_description}", job_description)
