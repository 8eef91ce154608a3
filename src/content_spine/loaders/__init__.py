"""
Loaders: the execution contract, base classes and the gateway client.

Usage::

    from content_spine.loaders import CurrentTimestampLoader

    await scheduler.register(CurrentTimestampLoader())
"""

from content_spine.loaders.contract import (
    DataLoader,
    InitContext,
    LoadContext,
    LoadingResult,
    SaveContext,
)
from content_spine.loaders.base import DataLoaderBase
from content_spine.loaders.client import GatewayClient
from content_spine.loaders.http import CursorMode, GraphQLDataLoaderBase, HttpDataLoaderBase
from content_spine.loaders.example import CURRENT_TIMESTAMP, CurrentTimestampLoader

__all__ = [
    "CURRENT_TIMESTAMP",
    "CurrentTimestampLoader",
    "CursorMode",
    "DataLoader",
    "DataLoaderBase",
    "GatewayClient",
    "GraphQLDataLoaderBase",
    "HttpDataLoaderBase",
    "InitContext",
    "LoadContext",
    "LoadingResult",
    "SaveContext",
]
