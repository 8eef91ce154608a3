"""SQL dialect abstraction for the durable stores.

Stores build SQL through a ``Dialect`` rather than hard-coding driver
syntax: placeholders, upserts and JSON field extraction are the fragments
that differ between engines.  ``SQLiteDialect`` is the shipped
implementation; a server database plugs in by providing the same methods.

Usage::

    d = SQLiteDialect()
    d.placeholders(3)                 # "?, ?, ?"
    d.json_path("a.b")                # '$."a"."b"' (bound as a parameter)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL fragments that vary across database engines."""

    @property
    def name(self) -> str:
        ...

    def placeholder(self, index: int) -> str:
        """Placeholder for the parameter at ``index`` (0-based)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholders for ``count`` parameters."""
        ...

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
        update_columns: list[str] | None = None,
        where: str | None = None,
    ) -> str:
        """INSERT that updates ``update_columns`` (default: non-key columns) on key conflict.

        ``where`` guards the update; a conflicting row that fails it is left as is.
        """
        ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        """INSERT that is a no-op when the key already exists."""
        ...

    def json_path(self, path: str) -> str:
        """Bindable JSON path parameter for a dotted field ``path``."""
        ...

    def json_extract(self, column: str, path_placeholder: str) -> str:
        """Expression extracting the bound JSON path from ``column``."""
        ...

    def json_type(self, column: str, path_placeholder: str) -> str:
        """Expression naming the JSON type at the bound path (``text``, ``integer``, ``real``, ...)."""
        ...

    def auto_increment(self) -> str:
        """Column definition for a monotonically increasing integer key."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders, JSON1 ``json_extract``."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- DML ---------------------------------------------------------------

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
        update_columns: list[str] | None = None,
        where: str | None = None,
    ) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = update_columns or [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        sql = f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        return f"{sql} WHERE {where}" if where else sql

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({ph})"

    # -- JSON --------------------------------------------------------------

    def json_path(self, path: str) -> str:
        # Quoted segments so keys with dashes or spaces resolve.
        return "$" + "".join(f'."{segment}"' for segment in path.split("."))

    def json_extract(self, column: str, path_placeholder: str) -> str:
        return f"json_extract({column}, {path_placeholder})"

    def json_type(self, column: str, path_placeholder: str) -> str:
        return f"json_type({column}, {path_placeholder})"

    # -- DDL ---------------------------------------------------------------

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"


__all__ = ["Dialect", "SQLiteDialect"]
