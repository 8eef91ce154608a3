"""In-memory data store."""

from __future__ import annotations

import copy
import threading
from dataclasses import replace
from datetime import datetime

from content_spine.core.timestamps import utc_now
from content_spine.data.filters import matches_all
from content_spine.data.models import Entry, Filter
from content_spine.data.protocol import UpstreamRecord
from content_spine.schema import SchemaIdentity


class InMemoryDataStore:
    """Dict-backed ``DataStore``.

    Ids come from a counter that is never rewound, so deleted ids are not
    reused.  Records are deep-copied on the way in so callers mutating
    their dicts afterwards do not change stored data.
    """

    def __init__(self) -> None:
        self._entries: dict[int, Entry] = {}
        self._by_upstream: dict[tuple[str, str], int] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def upsert_many(self, identity: SchemaIdentity, records: list[UpstreamRecord]) -> list[Entry]:
        now = utc_now()
        stored = []
        with self._lock:
            for upstream_id, record in records:
                key = (identity.key, upstream_id)
                existing_id = self._by_upstream.get(key)
                if existing_id is not None:
                    entry = replace(
                        self._entries[existing_id],
                        record=copy.deepcopy(record),
                        updated_at=now,
                    )
                else:
                    entry = Entry(self._next_id, identity, upstream_id, copy.deepcopy(record), now, now)
                    self._by_upstream[key] = entry.id
                    self._next_id += 1
                self._entries[entry.id] = entry
                stored.append(entry)
        return stored

    def get(self, entry_id: int) -> Entry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def page(
        self,
        identity: SchemaIdentity,
        filters: list[Filter],
        cursor: int | None,
        limit: int,
    ) -> list[Entry]:
        with self._lock:
            candidates = sorted(
                (e for e in self._entries.values() if e.identity.key == identity.key),
                key=lambda e: e.id,
            )
        result = []
        for entry in candidates:
            if cursor is not None and entry.id <= cursor:
                continue
            if filters and not matches_all(entry.record, filters):
                continue
            result.append(entry)
            if len(result) >= limit:
                break
        return result

    def delete_by_schema(self, key: str) -> int:
        with self._lock:
            doomed = [eid for eid, e in self._entries.items() if e.identity.key == key]
            for eid in doomed:
                entry = self._entries.pop(eid)
                self._by_upstream.pop((key, entry.upstream_id), None)
            return len(doomed)

    def stats(self, key: str) -> tuple[int, datetime | None]:
        with self._lock:
            entries = [e for e in self._entries.values() if e.identity.key == key]
        if not entries:
            return 0, None
        return len(entries), max(e.updated_at for e in entries)
