import pytest

from tablebrowser.domain.errors import ConstraintError, NotFoundError, ValidationError
from tablebrowser.domain.requests import FilterSpec, SortSpec
from tablebrowser.repositories.record_repository import RecordRepository

from fakes import USER_COLUMNS, FakeCatalog, FakeDatabaseClient, browser_config, column


@pytest.fixture
def db():
    return FakeDatabaseClient()


@pytest.fixture
def catalog():
    return FakeCatalog(columns={
        ("public", "users"): USER_COLUMNS,
        ("public", "tags"): [column("label")],
        ("public", "memberships"): [
            column("group_id", "integer", primary_key=True),
            column("user_id", "integer", primary_key=True),
        ],
    })


@pytest.fixture
def records(db, catalog):
    return RecordRepository(db, catalog, browser_config())


class TestCount:

    @pytest.mark.asyncio
    async def test_count_without_filter(self, records, db):
        db.scalar_results.append(3)
        assert await records.count("public", "users") == 3
        assert db.calls == [("scalar", 'SELECT COUNT(*) FROM "public"."users"', [])]

    @pytest.mark.asyncio
    async def test_count_uses_same_where_as_page(self, records, db):
        filter_spec = FilterSpec(column="age", operator="gte", value="18")
        await records.count("public", "users", filter_spec)
        await records.page("public", "users", filter_spec=filter_spec)

        count_sql = db.calls[0][1]
        page_sql = db.calls[1][1]
        assert count_sql == 'SELECT COUNT(*) FROM "public"."users" WHERE "age" >= $1'
        assert 'WHERE "age" >= $1' in page_sql
        assert db.calls[0][2] == [18]
        assert db.calls[1][2][0] == 18

    @pytest.mark.asyncio
    async def test_unknown_table_is_not_found(self, records, db):
        with pytest.raises(NotFoundError):
            await records.count("public", "missing")
        assert db.calls == []

    @pytest.mark.asyncio
    async def test_malformed_table_name_never_reaches_catalog(self, records, catalog):
        with pytest.raises(ValidationError):
            await records.count("public", "")
        assert catalog.column_lookups == []


class TestPage:

    @pytest.mark.asyncio
    async def test_default_page(self, records, db):
        db.query_results.append([{"id": 2, "email": "b"}, {"id": 1, "email": "a"}])
        rows = await records.page("public", "users")

        kind, sql, params = db.calls[0]
        assert sql == 'SELECT * FROM "public"."users" ORDER BY "id" DESC LIMIT $1 OFFSET $2'
        assert params == [100, 0]
        assert rows == [{"id": 2, "email": "b"}, {"id": 1, "email": "a"}]

    @pytest.mark.asyncio
    async def test_offset_and_sort(self, records, db):
        await records.page("public", "users", page="3", page_size="20", sort=SortSpec(column="email", direction="asc"))

        _, sql, params = db.calls[0]
        assert sql.endswith('ORDER BY "email" ASC, "id" ASC LIMIT $1 OFFSET $2')
        assert params == [20, 40]

    @pytest.mark.asyncio
    async def test_page_size_capped(self, records, db):
        await records.page("public", "users", page=1, page_size=50000)
        assert db.calls[0][2] == [1000, 0]

    @pytest.mark.asyncio
    async def test_reuses_given_columns(self, records, catalog):
        await records.page("public", "users", columns=USER_COLUMNS)
        assert catalog.column_lookups == []

    @pytest.mark.asyncio
    async def test_sort_injection_rejected_before_query(self, records, db):
        with pytest.raises(ValidationError):
            await records.page("public", "users", sort=SortSpec(column='"; DROP TABLE x; --', direction="asc"))
        assert db.calls == []


class TestInsert:

    @pytest.mark.asyncio
    async def test_insert_binds_converted_values(self, records, db):
        db.one_results.append({"id": 7, "email": "ada@example.com", "age": 36})
        row = await records.insert("public", "users", {"email": "ada@example.com", "age": "36"})

        _, sql, params = db.calls[0]
        assert sql == 'INSERT INTO "public"."users" ("email", "age") VALUES ($1, $2) RETURNING *'
        assert params == ["ada@example.com", 36]
        assert row["id"] == 7

    @pytest.mark.asyncio
    async def test_insert_defaults_only(self, records, db):
        db.one_results.append({"id": 8})
        await records.insert("public", "users", {})
        assert db.calls[0][1] == 'INSERT INTO "public"."users" DEFAULT VALUES RETURNING *'

    @pytest.mark.asyncio
    async def test_database_rejection_propagates(self, records, db):
        db.one_results.append(ConstraintError("duplicate key value violates unique constraint"))
        with pytest.raises(ConstraintError):
            await records.insert("public", "users", {"email": "dup"})


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_skips_key_column(self, records, db):
        db.one_results.append({"id": 5, "email": "new"})
        row = await records.update("public", "users", "5", {"id": 99, "email": "new"})

        _, sql, params = db.calls[0]
        assert sql == 'UPDATE "public"."users" SET "email" = $1 WHERE "id" = $2 RETURNING *'
        assert params == ["new", 5]
        assert row == {"id": 5, "email": "new"}

    @pytest.mark.asyncio
    async def test_missing_row_returns_none(self, records, db):
        assert await records.update("public", "users", 404, {"email": "x"}) is None

    @pytest.mark.asyncio
    async def test_nothing_to_set(self, records, db):
        with pytest.raises(ValidationError):
            await records.update("public", "users", 1, {"id": 1})
        assert db.calls == []

    @pytest.mark.asyncio
    async def test_composite_key_rejected(self, records):
        with pytest.raises(ValidationError):
            await records.update("public", "memberships", 1, {"group_id": 2})

    @pytest.mark.asyncio
    async def test_table_without_key_rejected(self, records):
        with pytest.raises(ValidationError):
            await records.update("public", "tags", 1, {"label": "x"})


class TestDelete:

    @pytest.mark.asyncio
    async def test_empty_ids_touch_nothing(self, records, db, catalog):
        assert await records.delete("public", "users", []) == 0
        assert db.calls == []
        assert catalog.column_lookups == []

    @pytest.mark.asyncio
    async def test_delete_binds_one_array(self, records, db):
        db.scalar_results.append(2)
        assert await records.delete("public", "users", ["1", 2, "3"]) == 2

        _, sql, params = db.calls[0]
        assert sql == (
            'WITH deleted AS (DELETE FROM "public"."users" WHERE "id" = ANY($1) RETURNING 1) '
            'SELECT COUNT(*) FROM deleted'
        )
        assert params == [[1, 2, 3]]
