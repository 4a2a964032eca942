#!/usr/bin/env python3
"""
View recent parsing diagnostics from PARSE_EVENTS_FILE.

Shows which recovery strategies rescued malformed responses, which errors
were classified, and which retries were scheduled.
"""

import json
from typing import Optional

import typer
from dotenv import load_dotenv

from jobtrack.utils.event_logging import PARSE_EVENTS_FILE, get_recent_events
from jobtrack.utils.timestamp import format_timestamp

load_dotenv()

app = typer.Typer(add_completion=False, help="View recent parsing events")


def _summarize(event: dict) -> str:
    event_type = event.get("event_type")
    if event_type == "recovery_strategy":
        return f"strategy={event.get('strategy')} raw_length={event.get('raw_length')}"
    if event_type == "error_classified":
        return f"{event.get('kind')}: {event.get('message')}"
    if event_type == "retry_scheduled":
        return f"{event.get('kind')} attempt={event.get('attempt')} delay={event.get('delay_ms')}ms"
    return json.dumps({k: v for k, v in event.items() if k not in ("timestamp", "event_type")})


@app.command()
def main(
    n: int = typer.Option(10, "--num", "-n", help="Number of recent events to show"),
    event_type: Optional[str] = typer.Option(
        None, "--event-type", "-e", help="Filter to events of this type"
    ),
    relative: bool = typer.Option(
        False, "--relative", "-r", help="Show relative timestamps (e.g., '2 hours ago')"
    ),
    raw: bool = typer.Option(False, "--raw", help="Print events as JSON lines"),
):
    """
    Show the last n parsing events.

    Examples:\n

        $ python scripts/tail_events.py                          # Last 10 events

        $ python scripts/tail_events.py -e recovery_strategy     # Malformed responses

        $ python scripts/tail_events.py -n 50 --relative         # Last 50, relative times
    """
    if PARSE_EVENTS_FILE is None:
        typer.secho("PARSE_EVENTS_FILE is not set", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    events = get_recent_events(n=n, event_type=event_type)
    if not events:
        typer.secho("No events found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if raw:
        for event in events:
            typer.echo(json.dumps(event))
        return

    suffix = f" [type={event_type}]" if event_type else ""
    typer.secho(f"\nShowing last {len(events)} event(s){suffix}:\n", fg=typer.colors.BLUE)

    for event in events:
        when = format_timestamp(event.get("timestamp", ""), relative=relative)
        typer.echo(f"{when:>20}  {event.get('event_type', '?'):<18} {_summarize(event)}")

    typer.echo("")


if __name__ == "__main__":
    app()
