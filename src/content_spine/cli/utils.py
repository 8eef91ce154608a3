"""
CLI utility helpers — runtime construction and output formatting.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from dataclasses import asdict
from typing import Any, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from content_spine.core.errors import SpineError
from content_spine.core.result import Result
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.runtime import Runtime, build_runtime
from content_spine.schema import SchemaIdentity

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


# ── Runtime helpers ──────────────────────────────────────────────────────


def load_settings(database: str | None = None) -> ContentSpineSettings:
    """Settings from the environment, with ``--database`` taking precedence."""
    settings = get_settings()
    if database:
        settings = settings.model_copy(update={"database_url": database})
    return settings


def open_runtime(database: str | None = None) -> Runtime:
    try:
        return build_runtime(load_settings(database))
    except SpineError as e:
        fail(e)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive one service coroutine to completion from a sync command."""
    return asyncio.run(coro)


def parse_identity(key: str) -> SchemaIdentity:
    try:
        return SchemaIdentity.parse(key)
    except SpineError as e:
        raise typer.BadParameter(e.message) from e


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: Exception) -> NoReturn:
    """Print ``error`` and exit with status 1."""
    if isinstance(error, SpineError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
        for field_error in getattr(error, "errors", None) or []:
            err_console.print(f"  [red]•[/red] {field_error.field or '/'}: {field_error.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=1)


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a model / dataclass / dict to a plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a value, or a list of values, to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def output_result(result: Result[Any], *, as_json: bool = False, title: str = "") -> None:
    """Render an ``Ok`` value, or print the ``Err`` and exit 1."""
    if result.is_err():
        fail(result.error)
    output(result.unwrap(), as_json=as_json, title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(_cell(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {_cell(v)}")


def _cell(value: Any) -> str:
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return "" if value is None else str(value)
