"""
Loguru setup for per-run log directories.

Context loggers (contexts/{context}/logger.py) call setup_logger() and add
their own prefix wrappers on top.
"""

import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "{time:HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: Optional[dict] = None,
    console_level: str = "INFO",
) -> Path:
    """
    Send all log output of a run to {log_dir}/{context_name}.log and the console.

    The file sink records DEBUG and above and is enqueued, since sessions log
    from worker threads. The file starts with a provenance header.

    Args:
        context_name: Context identifier, used as the log file name
        log_dir: Directory for this run (created if missing)
        extra_provenance: Extra header lines, e.g. {"LLM provider": "cerebras"}
        console_level: Minimum level shown on the console

    Returns:
        Path to log file
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", enqueue=True)
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    provenance = {
        "Command": " ".join(sys.argv),
        "Working directory": Path.cwd(),
        "Python": sys.version.split()[0],
        **(extra_provenance or {}),
    }
    logger.info("=" * 80)
    for key, value in provenance.items():
        logger.info(f"{key}: {value}")
    logger.info("=" * 80)

    return log_file
