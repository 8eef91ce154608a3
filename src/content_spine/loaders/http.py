"""
HTTP and GraphQL loader bases on httpx.

Both implement ``load`` as: build a request from the job, send it, pull
the raw items out of the JSON payload, map each to a record, and compute
the next cursor.  Subclasses fill in the hooks:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ hook                 │ default                                      │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │ url_for(job)         │ required (GraphQL: ``endpoint``)             │
    │ build_request(c, job)│ GET url_for(job) with params_for(job)        │
    │ extract_items(p)     │ the payload itself, which must be a list     │
    │ map_item(raw)        │ identity                                     │
    │ cursor_of(item)      │ ``str(item["id"])``                          │
    └──────────────────────┴──────────────────────────────────────────────┘

Transport failures, non-2xx responses and unreadable bodies raise
``SourceError`` (retryable); the scheduler fails the job with backoff.

Example:
    >>> class UsersLoader(HttpDataLoaderBase):
    ...     def url_for(self, job):
    ...         return "https://api.example.com/users"
    ...
    ...     def params_for(self, job):
    ...         return {"after": job.cursor, "limit": job.limit}
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx

from content_spine.core.errors import SourceError
from content_spine.core.logging import get_logger
from content_spine.loaders.base import DataLoaderBase
from content_spine.loaders.contract import LoadContext, LoadingResult
from content_spine.scheduling.models import Job

logger = get_logger(__name__)


class HttpDataLoaderBase(DataLoaderBase):
    """Loader whose ``load`` fetches one page over HTTP.

    Keyword Args:
        transport: httpx transport override (``httpx.MockTransport`` in tests).
        headers: Extra request headers (auth tokens and the like).
        timeout_seconds: Per-request timeout.
    """

    method = "GET"

    def __init__(
        self,
        *args: Any,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = 30.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.transport = transport
        self.headers = dict(headers or {})
        self.timeout_seconds = timeout_seconds

    # -- hooks -------------------------------------------------------------

    @abstractmethod
    def url_for(self, job: Job) -> str:
        ...

    def params_for(self, job: Job) -> dict[str, Any]:
        return {}

    def build_request(self, client: httpx.AsyncClient, job: Job) -> httpx.Request:
        return client.build_request(self.method, self.url_for(job), params=self.params_for(job))

    def extract_items(self, payload: Any) -> list[Any]:
        if not isinstance(payload, list):
            raise SourceError(f"Expected a JSON array from {self.name}, got {type(payload).__name__}")
        return payload

    def map_item(self, raw: Any) -> dict[str, Any]:
        return raw

    def next_cursor(self, items: list[dict[str, Any]], job: Job) -> str:
        return self.cursor_of(items[-1]) if items else job.cursor

    # -- load --------------------------------------------------------------

    async def load(self, ctx: LoadContext) -> LoadingResult:
        job = ctx.job
        payload = await self.fetch(job)
        items = [self.map_item(raw) for raw in self.extract_items(payload)]
        logger.debug("source_page_loaded", loader=self.name, items=len(items), cursor=job.cursor)
        return LoadingResult(items, self.next_cursor(items, job))

    async def fetch(self, job: Job) -> Any:
        """Send the request for ``job`` and return the decoded JSON body."""
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers=self.headers,
            transport=self.transport,
        ) as client:
            request = self.build_request(client, job)
            url = str(request.url)
            try:
                response = await client.send(request)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                raise SourceError(
                    f"{request.method} {url} returned {status}", cause=e
                ).with_context(loader=self.name, url=url, http_status=status) from e
            except httpx.HTTPError as e:
                raise SourceError(
                    f"{request.method} {url} failed: {e}", cause=e
                ).with_context(loader=self.name, url=url) from e
            except ValueError as e:
                raise SourceError(
                    f"{request.method} {url} returned invalid JSON", cause=e
                ).with_context(loader=self.name, url=url) from e


class CursorMode(str, Enum):
    """How a GraphQL loader pages through its source.

    SKIP: the cursor is an offset; next cursor = skip + items loaded.
    CURSOR: the cursor is a value of the last item (``cursor_of``).
    """

    SKIP = "skip"
    CURSOR = "cursor"


class GraphQLDataLoaderBase(HttpDataLoaderBase):
    """Loader that POSTs ``{query, variables}`` to a GraphQL endpoint.

    Subclasses set ``endpoint``, ``query`` and ``result_field`` (the key
    under ``data`` holding the item list).  Variables are ``limit`` plus
    ``skip`` (int) or ``cursor`` (str) depending on ``cursor_mode``.
    """

    method = "POST"
    endpoint: str = ""
    query: str = ""
    result_field: str = ""
    cursor_mode: CursorMode = CursorMode.CURSOR

    def url_for(self, job: Job) -> str:
        return self.endpoint

    def variables_for(self, job: Job) -> dict[str, Any]:
        variables: dict[str, Any] = {"limit": job.limit}
        if self.cursor_mode is CursorMode.SKIP:
            variables["skip"] = self._skip(job)
        else:
            variables["cursor"] = job.cursor or self.settings.default_cursor
        return variables

    def build_request(self, client: httpx.AsyncClient, job: Job) -> httpx.Request:
        return client.build_request(
            self.method,
            self.url_for(job),
            json={"query": self.query, "variables": self.variables_for(job)},
        )

    def extract_items(self, payload: Any) -> list[Any]:
        if not isinstance(payload, dict):
            raise SourceError(f"Unexpected GraphQL response for {self.name}")
        if payload.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in payload["errors"])
            raise SourceError(f"GraphQL errors from {self.name}: {messages}").with_context(loader=self.name)
        items = (payload.get("data") or {}).get(self.result_field)
        if not isinstance(items, list):
            raise SourceError(f"GraphQL response for {self.name} has no list at data.{self.result_field}")
        return items

    def next_cursor(self, items: list[dict[str, Any]], job: Job) -> str:
        if self.cursor_mode is CursorMode.SKIP:
            return str(self._skip(job) + len(items))
        return super().next_cursor(items, job)

    def _skip(self, job: Job) -> int:
        try:
            return int(job.cursor or 0)
        except ValueError:
            raise SourceError(f"Cursor {job.cursor!r} of {self.name} is not an offset") from None


__all__ = ["CursorMode", "GraphQLDataLoaderBase", "HttpDataLoaderBase"]
