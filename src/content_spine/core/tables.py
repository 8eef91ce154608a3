"""
Tables backing the durable stores.

Architecture:
    ::

        Table Registry (TABLES):
        ┌────────────────────────────────────────────────────────────┐
        │ schemas   → cs_schemas     one row per schema identity     │
        │ entries   → cs_entries     records, unique per upstream id │
        │ jobs      → cs_jobs        one row per schema identity     │
        │ job_logs  → cs_job_logs    bounded per-job run notes       │
        └────────────────────────────────────────────────────────────┘

    ``cs_schemas.revision`` is the optimistic concurrency token used by
    compare-and-swap registration.  ``cs_entries.id`` is the synthetic,
    never-reused id that orders pagination.

Examples:
    >>> from content_spine.core.tables import create_tables
    >>> create_tables(conn)

Tags:
    schema, ddl, tables, content-spine, database
"""

from __future__ import annotations

from content_spine.core.dialect import Dialect, SQLiteDialect
from content_spine.core.protocols import Connection

TABLES = {
    "schemas": "cs_schemas",
    "entries": "cs_entries",
    "jobs": "cs_jobs",
    "job_logs": "cs_job_logs",
}


def table_ddl(dialect: Dialect | None = None) -> dict[str, str]:
    """DDL statements keyed by name, rendered for ``dialect``."""
    d = dialect or SQLiteDialect()
    return {
        "schemas": """
            CREATE TABLE IF NOT EXISTS cs_schemas (
                schema_key TEXT PRIMARY KEY,
                namespace TEXT NOT NULL,
                name TEXT NOT NULL,
                version TEXT NOT NULL,
                json_schema TEXT NOT NULL,
                revision INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """,
        # AUTOINCREMENT guarantees ids are never reused after deletes.
        "entries": f"""
            CREATE TABLE IF NOT EXISTS cs_entries (
                id {d.auto_increment()},
                schema_key TEXT NOT NULL,
                upstream_id TEXT NOT NULL,
                record TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (schema_key, upstream_id)
            )
        """,
        "entries_idx_schema": """
            CREATE INDEX IF NOT EXISTS idx_cs_entries_schema
            ON cs_entries(schema_key, id)
        """,
        "jobs": """
            CREATE TABLE IF NOT EXISTS cs_jobs (
                job_key TEXT PRIMARY KEY,
                namespace TEXT NOT NULL,
                name TEXT NOT NULL,
                version TEXT NOT NULL,
                state TEXT NOT NULL,
                schedule_mode TEXT NOT NULL,
                cursor TEXT NOT NULL,
                job_limit INTEGER NOT NULL,
                current_fail_count INTEGER NOT NULL DEFAULT 0,
                scheduled_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                previous_scheduled_at TEXT
            )
        """,
        "jobs_idx_due": """
            CREATE INDEX IF NOT EXISTS idx_cs_jobs_due
            ON cs_jobs(state, scheduled_at)
        """,
        "job_logs": f"""
            CREATE TABLE IF NOT EXISTS cs_job_logs (
                id {d.auto_increment()},
                job_key TEXT NOT NULL,
                state TEXT NOT NULL,
                note TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """,
        "job_logs_idx_job": """
            CREATE INDEX IF NOT EXISTS idx_cs_job_logs_job
            ON cs_job_logs(job_key, id)
        """,
    }


def create_tables(conn: Connection, dialect: Dialect | None = None) -> None:
    """
    Create all content-spine tables.

    Safe to call multiple times (CREATE IF NOT EXISTS).
    """
    for _name, ddl in table_ddl(dialect).items():
        conn.execute(ddl)
    conn.commit()


__all__ = ["TABLES", "table_ddl", "create_tables"]
