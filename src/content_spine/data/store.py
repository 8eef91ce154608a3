"""SQL data store on ``cs_entries``.

Records are stored as JSON text; filters are pushed down to the database
with ``json_extract``/``json_type`` so pagination never loads rows it
will discard.

Filter translation (``x`` is ``json_extract(record, <path>)``, ``t`` is
``json_type(record, <path>)``)::

    equals  'v'    t = 'text' AND x = 'v'
    equals  3      x = 3
    equals  None   x IS NULL
    not     ...    NOT COALESCE(<equals>, 0)
    contains       t = 'text' AND instr(x, v) > 0
    starts_with    t = 'text' AND substr(x, 1, length(v)) = v
    ends_with      t = 'text' AND substr(x, length(x) - length(v) + 1) = v
    lt/lte/gt/gte  t matches the value's kind AND x < v
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any

from content_spine.core.dialect import Dialect
from content_spine.core.repository import BaseRepository
from content_spine.core.timestamps import from_iso8601, to_iso8601, utc_now
from content_spine.data.models import Entry, Filter, FilterOperator
from content_spine.data.protocol import UpstreamRecord
from content_spine.schema import SchemaIdentity

_ENTRY_COLUMNS = ["schema_key", "upstream_id", "record", "created_at", "updated_at"]

_COMPARATORS = {
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
}


class _Binder:
    """Collects parameters in the order their placeholders appear in the SQL."""

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self.params: list[Any] = []

    def __call__(self, value: Any) -> str:
        self.params.append(value)
        return self.dialect.placeholder(len(self.params) - 1)


class SqlDataStore(BaseRepository):
    """``DataStore`` backed by any ``Connection`` + ``Dialect``."""

    def upsert_many(self, identity: SchemaIdentity, records: list[UpstreamRecord]) -> list[Entry]:
        if not records:
            return []
        now = to_iso8601(utc_now())
        upsert = self.dialect.upsert(
            "cs_entries",
            _ENTRY_COLUMNS,
            ["schema_key", "upstream_id"],
            update_columns=["record", "updated_at"],
        )
        select = (
            f"SELECT * FROM cs_entries WHERE schema_key = {self.dialect.placeholder(0)} "
            f"AND upstream_id = {self.dialect.placeholder(1)}"
        )
        entries = []
        with self.transaction():
            for upstream_id, record in records:
                self.execute(upsert, (identity.key, upstream_id, json.dumps(record), now, now))
                row = self.query_one(select, (identity.key, upstream_id))
                entries.append(self._row_to_entry(row, identity))
        return entries

    def get(self, entry_id: int) -> Entry | None:
        row = self.query_one(f"SELECT * FROM cs_entries WHERE id = {self.ph(1)}", (entry_id,))
        return self._row_to_entry(row) if row else None

    def page(
        self,
        identity: SchemaIdentity,
        filters: list[Filter],
        cursor: int | None,
        limit: int,
    ) -> list[Entry]:
        bind = _Binder(self.dialect)
        clauses = [f"schema_key = {bind(identity.key)}"]
        if cursor is not None:
            clauses.append(f"id > {bind(cursor)}")
        clauses.extend(self._filter_clause(flt, bind) for flt in filters)
        sql = f"SELECT * FROM cs_entries WHERE {' AND '.join(clauses)} ORDER BY id LIMIT {bind(limit)}"

        rows = self.query(sql, tuple(bind.params))
        return [self._row_to_entry(row, identity) for row in rows]

    def delete_by_schema(self, key: str) -> int:
        with self.transaction():
            cursor = self.execute(f"DELETE FROM cs_entries WHERE schema_key = {self.ph(1)}", (key,))
            return cursor.rowcount

    def stats(self, key: str) -> tuple[int, datetime | None]:
        row = self.query_one(
            "SELECT COUNT(*) AS row_count, MAX(updated_at) AS last_updated "
            f"FROM cs_entries WHERE schema_key = {self.ph(1)}",
            (key,),
        )
        if not row:
            return 0, None
        return int(row["row_count"]), from_iso8601(row["last_updated"])

    # -- Filters -----------------------------------------------------------

    def _filter_clause(self, flt: Filter, bind: _Binder) -> str:
        path = self.dialect.json_path(flt.field_path)

        def x() -> str:
            return self.dialect.json_extract("record", bind(path))

        def t() -> str:
            return self.dialect.json_type("record", bind(path))

        value = flt.value
        match flt.operator:
            case FilterOperator.EQUALS:
                return self._equals(x, t, bind, value)
            case FilterOperator.NOT:
                if value is None:
                    return f"{x()} IS NOT NULL"
                return f"NOT COALESCE(({self._equals(x, t, bind, value)}), 0)"
            case FilterOperator.CONTAINS:
                return f"({t()} = 'text' AND instr({x()}, {bind(value)}) > 0)"
            case FilterOperator.STARTS_WITH:
                return f"({t()} = 'text' AND substr({x()}, 1, length({bind(value)})) = {bind(value)})"
            case FilterOperator.ENDS_WITH:
                return (
                    f"({t()} = 'text' AND "
                    f"substr({x()}, length({x()}) - length({bind(value)}) + 1) = {bind(value)})"
                )

        op = _COMPARATORS[flt.operator]
        kinds = "('text')" if isinstance(value, str) else "('integer', 'real')"
        return f"({t()} IN {kinds} AND {x()} {op} {bind(value)})"

    @staticmethod
    def _equals(x: Callable[[], str], t: Callable[[], str], bind: _Binder, value: Any) -> str:
        if value is None:
            return f"{x()} IS NULL"
        if isinstance(value, str):
            return f"({t()} = 'text' AND {x()} = {bind(value)})"
        return f"{x()} = {bind(value)}"

    # -- Rows --------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: dict[str, Any], identity: SchemaIdentity | None = None) -> Entry:
        return Entry(
            id=int(row["id"]),
            identity=identity or SchemaIdentity.parse(row["schema_key"]),
            upstream_id=row["upstream_id"],
            record=json.loads(row["record"]),
            created_at=from_iso8601(row["created_at"]),
            updated_at=from_iso8601(row["updated_at"]),
        )
