"""
Root Typer application for the content-spine CLI.

``content-spine run`` hosts the scheduler in the foreground; the
``schemas`` and ``jobs`` groups inspect and administer a database that a
running process (or a previous one) shares.
"""

from __future__ import annotations

import time

import typer
from typer import Typer

from content_spine.cli.jobs import app as jobs_app
from content_spine.cli.schemas import app as schemas_app
from content_spine.cli.utils import console, fail, open_runtime, run
from content_spine.core.settings import get_settings

app = Typer(
    name="content-spine",
    help="content-spine — schema registry, validated ingestion and loader scheduling.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from content_spine import __version__

        typer.echo(f"content-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """content-spine CLI — run the scheduler, inspect schemas and manage jobs."""
    from content_spine.core.logging import configure_logging

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


# ── run ──────────────────────────────────────────────────────────────────


@app.command("run")
def run_scheduler(
    database: str | None = typer.Option(None, "--database", "-d"),
    example: bool = typer.Option(False, "--example", help="Register the CurrentTimestamp loader"),
    duration: float | None = typer.Option(
        None, "--duration", help="Stop after this many seconds (default: until Ctrl-C)"
    ),
) -> None:
    """Start the job scheduler and keep it running."""
    from content_spine.core.errors import SpineError
    from content_spine.loaders.example import CurrentTimestampLoader

    runtime = open_runtime(database)
    try:
        try:
            runtime.scheduler.start()
        except SpineError as e:
            fail(e)

        if example:
            result = run(runtime.scheduler.register(CurrentTimestampLoader(settings=runtime.settings)))
            if result.is_err():
                fail(result.error)

        console.print(
            f"[green]Scheduler running[/green] "
            f"(tick every {runtime.settings.tick_interval_seconds}s, "
            f"loaders: {', '.join(runtime.scheduler.loader_names) or 'none'})"
        )
        deadline = None if duration is None else time.monotonic() + duration
        try:
            while deadline is None or time.monotonic() < deadline:
                time.sleep(0.2)
        except KeyboardInterrupt:
            console.print("\n[dim]Stopping...[/dim]")
    finally:
        runtime.close()


# ── Sub-command registration ─────────────────────────────────────────────

app.add_typer(schemas_app, name="schemas", help="Schema registry inspection.")
app.add_typer(jobs_app, name="jobs", help="Job administration.")


if __name__ == "__main__":
    app()
