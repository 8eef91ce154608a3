"""
Canonical database protocol for content-spine.

The durable stores (schemas, entries, jobs) talk to the database through
this minimal DB-API shaped contract, so they run unchanged on a raw
``sqlite3.Connection`` or on :class:`~content_spine.core.connection.SqliteConnection`.

Guardrails:
    ❌ DON'T: Redefine Connection(Protocol) in store modules
    ✅ DO: Import from content_spine.core.protocols

    ❌ DON'T: Add async methods to the Connection protocol
    ✅ DO: Keep store code sync; services expose the async surface

Tags:
    protocol, connection, database, content-spine
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    Architecture:
        ::

            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params)   → cursor (rowcount, fetch*)     │
            │ executemany(sql, list) → cursor                        │
            │ commit()               → Commit transaction            │
            │ rollback()             → Rollback transaction          │
            └────────────────────────────────────────────────────────┘
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters. SYNC."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...


__all__ = ["Connection"]
