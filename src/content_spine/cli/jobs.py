"""
CLI: ``content-spine jobs`` — job administration.

These commands write to the job store directly; a scheduler process
sharing the same database picks the changes up on its next tick.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from content_spine.cli.utils import fail, open_runtime, output, output_result, parse_identity, run

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_jobs(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List all jobs."""
    runtime = open_runtime(database)
    try:
        jobs = run(runtime.admin.list_jobs())
    finally:
        runtime.close()
    rows = jobs if json_out else [
        {
            "key": job.key,
            "state": job.state.value,
            "mode": job.schedule_mode.value,
            "cursor": job.cursor,
            "limit": job.limit,
            "fails": job.current_fail_count,
            "scheduled_at": job.scheduled_at.isoformat(),
        }
        for job in jobs
    ]
    output(rows, as_json=json_out, title="Jobs")


@app.command("show")
def show_job(
    key: str = typer.Argument(..., help="Job key (the schema key)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show a job and its recent log notes."""
    identity = parse_identity(key)
    runtime = open_runtime(database)
    try:
        result = run(runtime.admin.get(identity))
    finally:
        runtime.close()
    output_result(result, as_json=json_out, title=f"Job: {key}")


@app.command("reset")
def reset_job(
    key: str = typer.Argument(..., help="Job key"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Reset a job to BACKFILL from the default cursor, due now."""
    identity = parse_identity(key)
    runtime = open_runtime(database)
    try:
        result = run(runtime.admin.reset(identity))
    finally:
        runtime.close()
    output_result(result, as_json=json_out, title=f"Job reset: {key}")


@app.command("reset-all")
def reset_all_jobs(
    database: str | None = typer.Option(None, "--database", "-d"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Reset every job."""
    if not yes:
        typer.confirm("Reset every job to BACKFILL?", abort=True)
    runtime = open_runtime(database)
    try:
        result = run(runtime.admin.reset_all())
    finally:
        runtime.close()
    output_result(result, as_json=json_out, title="Jobs reset")


@app.command("submit")
def submit_job(
    payload: str = typer.Argument(..., help="Job descriptor as JSON, or @path to a JSON file"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Create or overwrite a job from a wire-shape descriptor.

    Example::

        content-spine jobs submit '{"info": {"namespace": "example",
            "name": "CurrentTimestamp", "version": "V1"},
            "scheduledAt": 1767225600000, "scheduleMode": "BACKFILL",
            "cursor": "0", "limit": 100}'
    """
    from content_spine.core.errors import ValidationError

    try:
        text = Path(payload[1:]).read_text() if payload.startswith("@") else payload
        document = json.loads(text)
    except OSError as e:
        fail(ValidationError(f"Cannot read {payload[1:]}: {e.strerror}"))
    except json.JSONDecodeError as e:
        fail(ValidationError(f"Descriptor is not valid JSON: {e.msg}"))

    runtime = open_runtime(database)
    try:
        result = run(runtime.admin.submit(document))
    finally:
        runtime.close()
    output_result(result, as_json=json_out, title="Job submitted")
