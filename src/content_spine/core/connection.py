"""Connection factory — create database connections from URL strings.

This is the single entry point for creating the connection the durable
stores share.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/gateway.db``                        SQLite file
==================  ==========================================  ============

Usage
-----
::

    from content_spine.core.connection import create_connection

    conn, info = create_connection("sqlite:///data/gateway.db", init_schema=True)
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/data/gateway.db')
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from content_spine.core.errors import ConfigError

logger = logging.getLogger(__name__)


# ── SQLite adapter ───────────────────────────────────────────────────────


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Each ``execute`` gets its own cursor, so a scheduler tick running on
    the backend thread never clobbers a result set being read elsewhere.
    ``lock`` is shared by every store using this connection to serialize
    transactions.
    """

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._last: sqlite3.Cursor | None = None
        self.lock = threading.RLock()
        # open BaseRepository.transaction blocks; nested ones join the outermost
        self.transaction_depth = 0

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._last = self._conn.execute(sql, params)
        return self._last

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        self._last = self._conn.executemany(sql, params)
        return self._last

    def executescript(self, script: str) -> Any:
        return self._conn.executescript(script)

    def fetchone(self) -> Any:
        return self._last.fetchone() if self._last else None

    def fetchall(self) -> list:
        return self._last.fetchall() if self._last else []

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    persistent: bool
    url: str
    resolved_path: str | None = None

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``."""
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        raise ConfigError(f"Unsupported database URL: {db!r}")

    return "sqlite", db


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
) -> tuple[SqliteConnection, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Args:
        db: ``None``/``"memory"`` for in-memory SQLite, ``sqlite:///path``
            or a bare file path for file-based SQLite.
        init_schema: Apply the content-spine tables (idempotent).

    Raises:
        ConfigError: For URL schemes other than SQLite.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn = SqliteConnection(":memory:")
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    else:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved)
        # a CLI process may write while a scheduler process is reading
        conn.raw.execute("PRAGMA journal_mode=WAL")
        info = ConnectionInfo(
            backend="sqlite",
            persistent=True,
            url=db or target,
            resolved_path=resolved,
        )

    if init_schema:
        from content_spine.core.tables import create_tables

        create_tables(conn)

    logger.debug(f"Created connection {info!r}")
    return conn, info


__all__ = ["SqliteConnection", "ConnectionInfo", "create_connection"]
