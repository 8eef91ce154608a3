"""Filter semantics, checked identically against both storage backends."""

import pytest
import pytest_asyncio

from content_spine.core.dialect import SQLiteDialect
from content_spine.core.errors import ValidationError
from content_spine.data import Filter, FilterOperator, SqlDataStore
from content_spine.schema import ObjectBuilder, PrimitiveKind, Schema, SchemaBuilder, SchemaIdentity

ITEM_ID = SchemaIdentity("example", "Item", "V1")
ITEM = Schema(
    ITEM_ID,
    SchemaBuilder("Item")
    .string("id")
    .string("name", required=False)
    .number("price", required=False)
    .boolean("active", required=False)
    .array("tags", PrimitiveKind.STRING, required=False)
    .object("meta", ObjectBuilder("Meta").string("color", required=False), required=False)
    .build(),
)

RECORDS = {
    "1": {"id": "1", "name": "Apple", "price": 3, "active": True, "meta": {"color": "red"}},
    "2": {"id": "2", "name": "Banana", "price": 1.5, "active": False, "meta": {"color": "yellow"}},
    "3": {"id": "3", "name": "apricot", "price": 10, "tags": ["a"]},
    "4": {"id": "4", "name": None, "price": None},
    "5": {"id": "5", "name": "42"},
}


@pytest_asyncio.fixture
async def items(registry, data_repo):
    (await registry.register(ITEM)).unwrap()
    (await data_repo.store_bulk(ITEM_ID, list(RECORDS.items()))).unwrap()
    return data_repo


async def matching(repo, *filters: Filter) -> list[str]:
    page = await repo.find_by_query(ITEM_ID, list(filters))
    return [e.upstream_id for e in page.entries]


class TestFilterOperators:
    @pytest.mark.parametrize(
        ("field", "operator", "value", "expected"),
        [
            ("name", "equals", "Apple", ["1"]),
            ("name", "equals", "apple", []),
            ("price", "equals", 3, ["1"]),
            ("price", "equals", 1.5, ["2"]),
            ("name", "equals", 42, []),
            ("name", "equals", None, ["4"]),
            ("active", "equals", True, ["1"]),
            ("meta.color", "equals", "red", ["1"]),
            ("meta", "equals", "red", []),
            ("name", "not", "Apple", ["2", "3", "4", "5"]),
            ("name", "not", None, ["1", "2", "3", "5"]),
            ("meta.color", "not", "red", ["2", "3", "4", "5"]),
            ("name", "contains", "an", ["2"]),
            ("name", "contains", "A", ["1"]),
            ("name", "starts_with", "Ap", ["1"]),
            ("name", "starts_with", "ap", ["3"]),
            ("name", "ends_with", "na", ["2"]),
            ("name", "ends_with", "much-longer-than-any-name", []),
            ("price", "contains", "1", []),
            ("price", "lt", 3, ["2"]),
            ("price", "lte", 3, ["1", "2"]),
            ("price", "gt", 3, ["3"]),
            ("price", "gte", 1.5, ["1", "2", "3"]),
            ("name", "gt", "B", ["2", "3"]),
            ("name", "lt", "B", ["1", "5"]),
            ("price", "gt", "0", []),
            ("missing", "equals", None, ["1", "2", "3", "4", "5"]),
            ("missing", "lt", 100, []),
        ],
    )
    @pytest.mark.asyncio
    async def test_operator(self, items, field, operator, value, expected):
        assert await matching(items, Filter(field, operator, value)) == expected

    @pytest.mark.asyncio
    async def test_filters_are_combined_with_and(self, items):
        result = await matching(
            items,
            Filter("price", FilterOperator.GTE, 1),
            Filter("name", FilterOperator.STARTS_WITH, "A"),
        )
        assert result == ["1"]

    @pytest.mark.asyncio
    async def test_filters_with_pagination(self, items):
        first = await items.find_by_query(ITEM_ID, [Filter("price", "gte", 1)], None, 2)
        assert [e.upstream_id for e in first.entries] == ["1", "2"]
        second = await items.find_by_query(ITEM_ID, [Filter("price", "gte", 1)], first.cursor, 2)
        assert [e.upstream_id for e in second.entries] == ["3"]


class NumberedDialect(SQLiteDialect):
    """SQLite with explicitly numbered ``?NNN`` placeholders."""

    def placeholder(self, index: int) -> str:
        return f"?{index + 1}"


class TestNumberedPlaceholders:
    @pytest.mark.parametrize(
        ("flt", "cursor", "expected"),
        [
            (Filter("name", "ends_with", "na"), None, ["2"]),
            (Filter("name", "not", "Apple"), 2, ["3", "4", "5"]),
            (Filter("price", "gte", 1.5), 1, ["2", "3"]),
            (Filter("meta.color", "equals", "red"), None, ["1"]),
        ],
    )
    def test_page_binds_through_the_dialect(self, conn, flt, cursor, expected):
        store = SqlDataStore(conn, NumberedDialect())
        store.upsert_many(ITEM_ID, list(RECORDS.items()))

        entries = store.page(ITEM_ID, [flt, Filter("id", "not", "9")], cursor, 10)

        assert [e.upstream_id for e in entries] == expected


class TestFilterValidation:
    def test_unknown_operator(self):
        with pytest.raises(ValidationError, match="Unknown filter operator"):
            Filter("name", "like", "x")

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_bad_path(self, path):
        with pytest.raises(ValidationError, match="Invalid field path"):
            Filter(path, "equals", "x")

    def test_non_scalar_value(self):
        with pytest.raises(ValidationError, match="must be a scalar"):
            Filter("tags", "equals", ["a"])

    def test_string_match_needs_string(self):
        with pytest.raises(ValidationError, match="needs a string value"):
            Filter("name", "contains", 3)

    @pytest.mark.parametrize("value", [None, True])
    def test_comparison_needs_number_or_string(self, value):
        with pytest.raises(ValidationError, match="needs a number or string"):
            Filter("price", "lt", value)

    def test_parse_accepts_camel_case(self):
        flt = Filter.parse({"fieldPath": "meta.color", "operator": "equals", "value": "red"})
        assert flt.operator is FilterOperator.EQUALS
        assert flt.path == ["meta", "color"]

    def test_parse_requires_path(self):
        with pytest.raises(ValidationError):
            Filter.parse({"operator": "equals", "value": 1})
