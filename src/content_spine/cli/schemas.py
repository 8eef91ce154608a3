"""
CLI: ``content-spine schemas`` — registry inspection and entry queries.
"""

from __future__ import annotations

import json

import typer

from content_spine.cli.utils import (
    console,
    fail,
    open_runtime,
    output,
    output_result,
    parse_identity,
    run,
)

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_schemas(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered schemas."""
    runtime = open_runtime(database)
    try:
        schemas = run(runtime.registry.find_all())
    finally:
        runtime.close()
    rows = [
        {
            "key": s.key,
            "properties": len(s.descriptor.properties),
            "definitions": len(s.descriptor.definitions),
        }
        for s in schemas
    ]
    output(rows, as_json=json_out, title="Schemas")


@app.command("stats")
def schema_stats(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Entry counts and last write time per schema."""
    runtime = open_runtime(database)
    try:
        stats = run(runtime.registry.load_stats())
    finally:
        runtime.close()
    output(stats, as_json=json_out, title="Schema stats")


@app.command("show")
def show_schema(
    key: str = typer.Argument(..., help="Schema key, e.g. example.User.V1"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Print a schema as JSON Schema."""
    from content_spine.core.errors import MissingSchemaError

    identity = parse_identity(key)
    runtime = open_runtime(database)
    try:
        schema = run(runtime.registry.find(identity))
    finally:
        runtime.close()
    if schema is None:
        fail(MissingSchemaError(key))
    output(schema, as_json=True)


@app.command("remove")
def remove_schema(
    key: str = typer.Argument(..., help="Schema key"),
    database: str | None = typer.Option(None, "--database", "-d"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove a schema and every entry stored under it."""
    identity = parse_identity(key)
    if not yes:
        typer.confirm(f"Remove {key} and all of its entries?", abort=True)
    runtime = open_runtime(database)
    try:
        result = run(runtime.registry.remove(identity))
    finally:
        runtime.close()
    output_result(result.map(lambda _: {"removed": key}))


@app.command("entries")
def list_entries(
    key: str = typer.Argument(..., help="Schema key"),
    cursor: int | None = typer.Option(None, "--cursor", help="Last entry id of the previous page"),
    limit: int | None = typer.Option(None, "--limit", "-n"),
    filters: list[str] = typer.Option(
        [], "--filter", "-f",
        help='JSON filter, e.g. \'{"field_path": "name", "operator": "equals", "value": "x"}\'',
    ),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Page through the entries stored under a schema."""
    from content_spine.core.errors import SpineError, ValidationError
    from content_spine.data import Filter

    identity = parse_identity(key)
    try:
        parsed = [Filter.parse(json.loads(raw)) for raw in filters]
    except json.JSONDecodeError as e:
        fail(ValidationError(f"Filter is not valid JSON: {e.msg}"))
    except SpineError as e:
        fail(e)

    runtime = open_runtime(database)
    try:
        page = run(runtime.data.find_by_query(identity, parsed, cursor, limit))
    except SpineError as e:
        fail(e)
    finally:
        runtime.close()

    output(page.entries, as_json=json_out, title=f"Entries: {key}")
    if page.cursor is not None and not json_out:
        console.print(f"\n[dim]Next page: --cursor {page.cursor}[/dim]")
