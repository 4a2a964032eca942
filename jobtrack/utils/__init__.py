"""
Shared utilities for JOBTRACK.

Common functionality used across contexts:
- LLM provider access
- Logging setup and diagnostic event log
- Timestamps
"""

from jobtrack.utils.timestamp import format_timestamp, now_exact

__all__ = ["format_timestamp", "now_exact"]
