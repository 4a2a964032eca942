#!/usr/bin/env python3
"""
Extract a structured job record from a job posting.

Usage:
    python scripts/parse_job.py posting.txt
    pbpaste | python scripts/parse_job.py -
    python scripts/parse_job.py posting.txt --provider openai --model gpt-4o-mini
    python scripts/parse_job.py posting.txt --form --folder-id 42
"""

import json
import sys
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from loguru import logger

from jobtrack.contexts.intake.config import load_parsing_config
from jobtrack.contexts.intake.job_record import to_form_data
from jobtrack.contexts.intake.logger import setup_intake_logger
from jobtrack.contexts.intake.parsing_session import ParsingSession

load_dotenv()

app = typer.Typer(add_completion=False, help="Parse a job posting with the configured LLM.")


def _read_posting(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        typer.secho(f"File not found: {source}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


@app.command()
def main(
    source: str = typer.Argument(..., help="Posting file, or '-' for stdin"),
    provider: Optional[str] = typer.Option(
        None, "--provider", "-p", help="LLM provider (cerebras, openai, anthropic)"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", help="Retries after the first attempt"
    ),
    overrides: Optional[list[str]] = typer.Option(
        None, "--set", help="Config override (e.g. request.temperature=0.0)"
    ),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Write a DEBUG log file to this directory"
    ),
    form: bool = typer.Option(False, "--form", help="Print form data instead of the record"),
    folder_id: str = typer.Option("", "--folder-id", help="Folder for the form data"),
):
    """
    Parse a job posting and print the extracted record as JSON.

    Ctrl+C cancels the request in flight.

    Examples:\n

        $ python scripts/parse_job.py posting.txt

        $ python scripts/parse_job.py posting.txt --max-retries 0

        $ python scripts/parse_job.py posting.txt --set retry.base_delay_ms=250
    """
    dotlist = list(overrides or [])
    if provider:
        dotlist.append(f"provider={provider}")
    if model:
        dotlist.append(f"model={model}")
    if max_retries is not None:
        dotlist.append(f"retry.max_attempts={max_retries}")

    try:
        config = load_parsing_config(overrides=dotlist)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if log_dir is not None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = setup_intake_logger(log_dir / f"parse_{timestamp}")
        typer.echo(f"Logging to {log_file}", err=True)
    else:
        logger.remove()
        logger.add(sys.stderr, level="WARNING")

    posting = _read_posting(source)
    session = ParsingSession(coordinator=config.build_coordinator())

    outcome = {}
    worker = threading.Thread(
        target=lambda: outcome.update(result=session.submit(posting)), daemon=True
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        session.cancel()
        worker.join()
        typer.secho("\nCancelled", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(130)

    result = outcome["result"]
    if not result.success:
        typer.secho(f"✗ {result.user_message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if form:
        payload = asdict(to_form_data(result.record, folder_id=folder_id))
    else:
        payload = result.record.to_dict()
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))

    metrics = result.metrics
    typer.secho(
        f"✓ Parsed in {metrics.total_ms:.0f}ms "
        f"(API {metrics.api_call_ms:.0f}ms, {metrics.attempts} attempt(s))",
        fg=typer.colors.GREEN,
        err=True,
    )


if __name__ == "__main__":
    app()
