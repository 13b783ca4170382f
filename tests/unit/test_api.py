import pytest
from fastapi.testclient import TestClient

from tablebrowser.api.dependencies import get_table_service
from tablebrowser.config import get_settings
from tablebrowser.domain.errors import ConnectivityError, ValidationError
from tablebrowser.domain.responses import DeleteResult, LinkResolution, MutationResult, TablePage
from tablebrowser.infrastructure.database_client import DatabaseClient
from tablebrowser.main import app

from fakes import USER_COLUMNS, FailingPool


class StubTableService:
    """Records the arguments each route passes to the service."""

    def __init__(self):
        self.calls = []

    async def list_schemas(self):
        return ["public", "sales"]

    async def list_tables(self, schema):
        self.calls.append(("list_tables", schema))
        return ["orders", "users"]

    async def list_columns(self, schema, table):
        return USER_COLUMNS

    async def get_table_definition(self, schema, table):
        return ""

    async def count(self, schema, table, filter_spec=None):
        self.calls.append(("count", filter_spec))
        return 3

    async def get_page(self, schema, table, page=1, page_size=None, sort=None, filter_spec=None):
        self.calls.append(("get_page", page, page_size, sort, filter_spec))
        if sort is not None and sort.direction not in ("asc", "desc"):
            raise ValidationError("Unknown sort direction", details={"direction": sort.direction})
        return TablePage(
            schema_name=schema,
            table_name=table,
            columns=USER_COLUMNS,
            rows=[{"id": 1}],
            total_records=1,
            page=1,
            page_size=100,
            sort=sort,
            filter=filter_spec,
        )

    async def insert_record(self, schema, table, values):
        if "email" not in values:
            return MutationResult(success=False, error="null value in column \"email\"", error_code="CONSTRAINT_ERROR")
        return MutationResult(success=True, data={"id": 9, **values})

    async def update_record(self, schema, table, row_id, values):
        self.calls.append(("update_record", row_id, values))
        return MutationResult(success=False, error="No row", error_code="NOT_FOUND")

    async def delete_records(self, schema, table, ids):
        self.calls.append(("delete_records", ids))
        return DeleteResult(success=True, deleted_count=len(ids))

    async def resolve_link(self, schema, table, column, value):
        return LinkResolution(is_link=False)

    async def related_options(self, schema, table, column, search=None):
        raise ConnectivityError("Database client is not connected")


@pytest.fixture
def stub():
    return StubTableService()


@pytest.fixture
def client(stub):
    app.dependency_overrides[get_table_service] = lambda: stub
    # No lifespan: routes run against the stub only
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def test_list_schemas(client):
    response = client.get("/schemas")
    assert response.status_code == 200
    assert response.json() == {"schemas": ["public", "sales"]}


def test_trace_id_is_echoed(client):
    response = client.get("/schemas", headers={"X-Trace-ID": "trace-abc"})
    assert response.headers["X-Trace-ID"] == "trace-abc"


def test_columns_expose_allowed_operators(client):
    response = client.get("/schemas/public/tables/users/columns")
    columns = response.json()["columns"]
    age = next(c for c in columns if c["name"] == "age")
    assert "gte" in age["allowed_operators"]
    assert "contains" not in age["allowed_operators"]


def test_rows_without_sort_or_filter(client, stub):
    response = client.get("/schemas/public/tables/users/rows")
    assert response.status_code == 200
    assert stub.calls[-1] == ("get_page", None, None, None, None)


def test_sort_needs_column_and_direction(client, stub):
    client.get("/schemas/public/tables/users/rows", params={"sort_column": "email"})
    assert stub.calls[-1][3] is None

    client.get("/schemas/public/tables/users/rows", params={"sort_column": "email", "sort_direction": "desc"})
    sort = stub.calls[-1][3]
    assert (sort.column, sort.direction) == ("email", "desc")


def test_filter_needs_all_three_parts(client, stub):
    client.get("/schemas/public/tables/users/count", params={"filter_column": "age", "filter_operator": "gte"})
    assert stub.calls[-1] == ("count", None)

    client.get(
        "/schemas/public/tables/users/count",
        params={"filter_column": "age", "filter_operator": "gte", "filter_value": "18"},
    )
    filter_spec = stub.calls[-1][1]
    assert (filter_spec.column, filter_spec.operator, filter_spec.value) == ("age", "gte", "18")


def test_raw_pagination_passed_through(client, stub):
    client.get("/schemas/public/tables/users/rows", params={"page": "abc", "page_size": "-1"})
    assert stub.calls[-1][1:3] == ("abc", "-1")


def test_validation_error_becomes_422(client):
    response = client.get(
        "/schemas/public/tables/users/rows",
        params={"sort_column": "email", "sort_direction": "sideways"},
    )
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_error"
    assert "trace_id" in body


def test_connectivity_error_becomes_503(client):
    response = client.get("/schemas/public/tables/profile/columns/user_id/options")
    assert response.status_code == 503
    assert response.json()["error"] == "connectivity_error"


def test_insert_created(client):
    response = client.post("/schemas/public/tables/users/rows", json={"values": {"email": "ada@example.com"}})
    assert response.status_code == 201
    assert response.json()["data"]["id"] == 9


def test_insert_failure_status_follows_error_code(client):
    response = client.post("/schemas/public/tables/users/rows", json={"values": {}})
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_update_missing_row_is_404(client, stub):
    response = client.patch("/schemas/public/tables/users/rows/77", json={"values": {"email": "x"}})
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"
    assert stub.calls[-1] == ("update_record", "77", {"email": "x"})


def test_delete(client, stub):
    response = client.post("/schemas/public/tables/users/rows/delete", json={"ids": [1, "2"]})
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 2
    assert stub.calls[-1] == ("delete_records", [1, "2"])


def test_link_on_plain_column(client):
    response = client.get("/schemas/public/tables/users/columns/email/link", params={"value": "x"})
    assert response.json()["is_link"] is False


def test_health_without_database(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database_status"] == "not_configured"


def test_unknown_route_uses_error_body(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "not_found"
    assert body["trace_id"] == response.headers["X-Trace-ID"]


def test_missing_database_client_is_unavailable():
    # Without the lifespan there is no client on app.state
    plain = TestClient(app, raise_server_exceptions=False)
    response = plain.get("/schemas")
    assert response.status_code == 503
    assert response.json()["error"] == "connectivity_error"


def test_driver_failure_body_has_no_sql(monkeypatch):
    settings = get_settings()
    db_client = DatabaseClient(settings.database)
    db_client._pool = FailingPool(RuntimeError("driver exploded"))
    monkeypatch.setattr(app.state, "settings", settings, raising=False)
    monkeypatch.setattr(app.state, "db_client", db_client, raising=False)

    response = TestClient(app, raise_server_exceptions=False).get("/schemas")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "database_query_error"
    assert "details" not in body
    assert "SELECT" not in response.text
    assert "information_schema" not in response.text
