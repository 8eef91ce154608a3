"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository` — the base class of every durable store
(schemas, entries, jobs).  It pairs a
:class:`~content_spine.core.protocols.Connection` with a
:class:`~content_spine.core.dialect.Dialect`, converts driver exceptions
into :class:`~content_spine.core.errors.DatabaseError`, and serializes
multi-statement writes through :meth:`transaction`.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from content_spine.core       │
    │   dialect: Dialect         ← SQLiteDialect by default              │
    │   lock: RLock              ← shared with the connection if it has  │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   transaction()            → commit on success, rollback on error  │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class MyStore(BaseRepository):
    ...     def get(self, key: str):
    ...         return self.query_one(
    ...             f"SELECT * FROM my_table WHERE key = {self.ph(1)}",
    ...             (key,),
    ...         )

Tags:
    repository, database, abstraction, transactions
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from content_spine.core.dialect import Dialect, SQLiteDialect
from content_spine.core.errors import DatabaseError
from content_spine.core.protocols import Connection

_DRIVER_ERRORS: tuple[type[Exception], ...] = (sqlite3.Error,)


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use.  Defaults to :class:`SQLiteDialect`.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()
        self.lock = getattr(conn, "lock", None) or threading.RLock()

    # -- Convenience shortcuts ---------------------------------------------

    def ph(self, count: int) -> str:
        """Shortcut for ``self.dialect.placeholders(count)``."""
        return self.dialect.placeholders(count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor."""
        try:
            return self.conn.execute(sql, params)
        except _DRIVER_ERRORS as e:
            raise DatabaseError.wrap(e) from e

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts."""
        with self.lock:
            cursor = self.execute(sql, params)
            try:
                rows = cursor.fetchall()
            except _DRIVER_ERRORS as e:
                raise DatabaseError.wrap(e) from e
            if not rows:
                return []
            try:
                return [dict(row) for row in rows]
            except (TypeError, ValueError):
                pass
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row, strict=False)) for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed statements atomically.

        Commits when the block exits normally; rolls back and re-raises
        otherwise.  Driver errors surface as ``DatabaseError``.  A
        transaction opened inside another one on the same connection
        (by this or another store) joins it: only the outermost block
        commits or rolls back.
        """
        with self.lock:
            depth = getattr(self.conn, "transaction_depth", 0)
            self.conn.transaction_depth = depth + 1
            try:
                if depth:
                    yield
                    return
                try:
                    yield
                    self.conn.commit()
                except _DRIVER_ERRORS as e:
                    self.conn.rollback()
                    raise DatabaseError.wrap(e) from e
                except BaseException:
                    self.conn.rollback()
                    raise
            finally:
                self.conn.transaction_depth = depth


__all__ = ["BaseRepository"]
