"""Tests for the httpx-based HTTP and GraphQL loader bases."""

import json

import httpx
import pytest

from content_spine.core.errors import SourceError
from content_spine.loaders import CursorMode, GraphQLDataLoaderBase, HttpDataLoaderBase, LoadContext
from tests._support import make_job, user_schema


class UsersLoader(HttpDataLoaderBase):
    def url_for(self, job):
        return "https://api.test/users"

    def params_for(self, job):
        return {"after": job.cursor, "limit": job.limit}

    def map_item(self, raw):
        return {"id": str(raw["user_id"]), "name": raw["display_name"]}


class UsersGraphQLLoader(GraphQLDataLoaderBase):
    endpoint = "https://api.test/graphql"
    query = "query Users($limit: Int!, $skip: Int!) { users(first: $limit, skip: $skip) { id name } }"
    result_field = "users"
    cursor_mode = CursorMode.SKIP


def http_loader(handler, settings) -> UsersLoader:
    return UsersLoader(user_schema(), settings=settings, transport=httpx.MockTransport(handler))


class TestHttpDataLoaderBase:
    @pytest.mark.asyncio
    async def test_load_maps_items_and_advances_cursor(self, settings):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[
                    {"user_id": 11, "display_name": "Ada"},
                    {"user_id": 12, "display_name": "Grace"},
                ],
            )

        loader = http_loader(handler, settings)
        result = await loader.load(LoadContext(make_job(cursor="10", limit=2)))

        assert result.data == [{"id": "11", "name": "Ada"}, {"id": "12", "name": "Grace"}]
        assert result.cursor == "12"
        assert seen[0].method == "GET"
        assert seen[0].url.params["after"] == "10"
        assert seen[0].url.params["limit"] == "2"

    @pytest.mark.asyncio
    async def test_empty_page_keeps_cursor(self, settings):
        loader = http_loader(lambda request: httpx.Response(200, json=[]), settings)
        result = await loader.load(LoadContext(make_job(cursor="42")))
        assert result.data == []
        assert result.cursor == "42"

    @pytest.mark.asyncio
    async def test_error_status_raises_source_error(self, settings):
        loader = http_loader(lambda request: httpx.Response(500, text="boom"), settings)

        with pytest.raises(SourceError) as exc_info:
            await loader.load(LoadContext(make_job()))

        assert exc_info.value.retryable
        assert exc_info.value.context.http_status == 500
        assert exc_info.value.context.loader == "example.User.V1"

    @pytest.mark.asyncio
    async def test_invalid_json_raises_source_error(self, settings):
        loader = http_loader(lambda request: httpx.Response(200, text="not json"), settings)

        with pytest.raises(SourceError, match="invalid JSON"):
            await loader.load(LoadContext(make_job()))

    @pytest.mark.asyncio
    async def test_non_list_payload_raises_source_error(self, settings):
        loader = http_loader(lambda request: httpx.Response(200, json={"users": []}), settings)

        with pytest.raises(SourceError, match="Expected a JSON array"):
            await loader.load(LoadContext(make_job()))

    @pytest.mark.asyncio
    async def test_transport_failure_raises_source_error(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        loader = http_loader(handler, settings)

        with pytest.raises(SourceError, match="failed"):
            await loader.load(LoadContext(make_job()))


class TestGraphQLDataLoaderBase:
    @pytest.mark.asyncio
    async def test_skip_mode_sends_offset_and_advances_by_count(self, settings):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200, json={"data": {"users": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}]}}
            )

        loader = UsersGraphQLLoader(user_schema(), settings=settings, transport=httpx.MockTransport(handler))
        result = await loader.load(LoadContext(make_job(cursor="4", limit=2)))

        assert bodies[0]["variables"] == {"limit": 2, "skip": 4}
        assert bodies[0]["query"] == UsersGraphQLLoader.query
        assert [item["id"] for item in result.data] == ["a", "b"]
        assert result.cursor == "6"

    @pytest.mark.asyncio
    async def test_cursor_mode_uses_last_item(self, settings):
        bodies: list[dict] = []

        class CursorLoader(UsersGraphQLLoader):
            cursor_mode = CursorMode.CURSOR

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"users": [{"id": "x9", "name": "X"}]}})

        loader = CursorLoader(user_schema(), settings=settings, transport=httpx.MockTransport(handler))
        result = await loader.load(LoadContext(make_job(cursor="x1", limit=5)))

        assert bodies[0]["variables"] == {"limit": 5, "cursor": "x1"}
        assert result.cursor == "x9"

    @pytest.mark.asyncio
    async def test_graphql_errors_raise_source_error(self, settings):
        payload = {"errors": [{"message": "rate limited"}], "data": None}
        loader = UsersGraphQLLoader(
            user_schema(),
            settings=settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)),
        )

        with pytest.raises(SourceError, match="rate limited"):
            await loader.load(LoadContext(make_job()))

    @pytest.mark.asyncio
    async def test_missing_result_list_raises_source_error(self, settings):
        loader = UsersGraphQLLoader(
            user_schema(),
            settings=settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": {}})),
        )

        with pytest.raises(SourceError, match="data.users"):
            await loader.load(LoadContext(make_job()))

    @pytest.mark.asyncio
    async def test_non_numeric_skip_cursor_raises_source_error(self, settings):
        loader = UsersGraphQLLoader(
            user_schema(),
            settings=settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": {"users": []}})),
        )

        with pytest.raises(SourceError, match="not an offset"):
            await loader.load(LoadContext(make_job(cursor="abc")))
