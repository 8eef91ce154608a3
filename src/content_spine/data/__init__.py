"""
Data ingestion: schema-validated entries with cursor pagination.

Usage::

    from content_spine.data import DataIngestionRepository, Filter, InMemoryDataStore

    repo = DataIngestionRepository(registry, InMemoryDataStore())
    await repo.store(identity, "42", {"id": "42", "name": "Ada"})
    page = await repo.find_by_query(identity, [Filter("name", "starts_with", "A")])
"""

from content_spine.data.filters import matches_all, matches_filter
from content_spine.data.memory import InMemoryDataStore
from content_spine.data.models import Entry, EntryPage, Filter, FilterOperator
from content_spine.data.protocol import DataRepository, DataStore, UpstreamRecord
from content_spine.data.service import DataIngestionRepository
from content_spine.data.store import SqlDataStore

__all__ = [
    "DataIngestionRepository",
    "DataRepository",
    "DataStore",
    "Entry",
    "EntryPage",
    "Filter",
    "FilterOperator",
    "InMemoryDataStore",
    "SqlDataStore",
    "UpstreamRecord",
    "matches_all",
    "matches_filter",
]
