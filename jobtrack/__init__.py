"""
JOBTRACK - Job application tracker intake pipeline

Turns a pasted job posting into a structured job record using an external
chat-completion service, with bounded retries, cooperative cancellation and
recovery of malformed model output.

Architecture:
- Intake Context: Job posting submission, LLM request coordination, response
  recovery and progress phases
- Utils: LLM providers, logging, diagnostic events, timestamps
"""

__version__ = "0.1.0"
