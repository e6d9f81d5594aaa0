"""
Shared test fixtures.

Provides an in-memory Supabase stand-in that actually stores rows, so
services can be exercised end to end without a database.
"""

import os
import re
import sys
from pathlib import Path

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require these at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from typing import Any, Callable, Generator, Optional

from postgrest.exceptions import APIError

from models.catalog import ENTITY_REGISTRY


# ===================
# FAKE SUPABASE CLIENT
# ===================

class FakeSupabaseResponse:
    """Fake Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class FakeSupabaseQuery:
    """
    Chainable query builder over one in-memory table.

    Filters, ordering and ranges are applied on execute(), like PostgREST.
    """

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._columns: Optional[list[str]] = None
        self._count = False
        self._payload: Any = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None
        self._single = False
        self._maybe_single = False

    # Operations

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._op = "select"
        if columns.strip() != "*":
            self._columns = [c.strip() for c in columns.split(",") if c.strip()]
        self._count = count == "exact"
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data: dict):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters

    def eq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column: str, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column: str, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def is_(self, column: str, value):
        expected = {"null": None, "true": True, "false": False}.get(str(value).lower(), value)
        self._filters.append(lambda row: row.get(column) is expected)
        return self

    def ilike(self, column: str, pattern: str):
        regex = re.compile(
            "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$",
            re.IGNORECASE
        )
        self._filters.append(lambda row: bool(regex.match(str(row.get(column) or ""))))
        return self

    # Modifiers

    def order(self, column: str, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self._range = (start, end)
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def single(self):
        self._single = True
        return self

    def maybe_single(self):
        self._maybe_single = True
        return self

    # Execution

    def execute(self) -> FakeSupabaseResponse:
        self._client._run_hooks(self._table, self._op)

        if self._op == "insert":
            return self._execute_insert()
        if self._op == "update":
            return self._execute_update()
        if self._op == "delete":
            return self._execute_delete()
        return self._execute_select()

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def _execute_select(self) -> FakeSupabaseResponse:
        rows = [row for row in self._client.rows(self._table) if self._matches(row)]
        total = len(rows) if self._count else None

        for column, desc in reversed(self._order):
            rows.sort(
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
                reverse=desc
            )

        if self._range:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._columns:
            rows = [{c: row.get(c) for c in self._columns} for row in rows]
        else:
            rows = [dict(row) for row in rows]

        if self._single or self._maybe_single:
            if not rows and self._single:
                raise APIError({"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"})
            return FakeSupabaseResponse(data=rows[0] if rows else None, count=total)

        return FakeSupabaseResponse(data=rows, count=total)

    def _execute_insert(self) -> FakeSupabaseResponse:
        items = self._payload if isinstance(self._payload, list) else [self._payload]
        table_rows = self._client.rows(self._table)
        inserted = []

        for item in items:
            row = dict(item)
            self._client._check_unique(self._table, row, table_rows)

            id_column = self._client.id_columns.get(self._table)
            if id_column and not row.get(id_column):
                row[id_column] = self._client.next_id(id_column)

            table_rows.append(row)
            inserted.append(dict(row))

        self._client.writes.append(("insert", self._table, inserted))
        return FakeSupabaseResponse(data=inserted)

    def _execute_update(self) -> FakeSupabaseResponse:
        updated = []
        for row in self._client.rows(self._table):
            if self._matches(row):
                row.update(self._payload)
                updated.append(dict(row))

        self._client.writes.append(("update", self._table, updated))
        return FakeSupabaseResponse(data=updated)

    def _execute_delete(self) -> FakeSupabaseResponse:
        table_rows = self._client.rows(self._table)
        removed = [row for row in table_rows if self._matches(row)]
        table_rows[:] = [row for row in table_rows if not self._matches(row)]

        self._client.writes.append(("delete", self._table, removed))
        return FakeSupabaseResponse(data=[dict(row) for row in removed])


class FakeSupabaseClient:
    """
    In-memory Supabase client.

    Canonical tables enforce unique names and link tables enforce unique
    pairs, raising the same APIError (code 23505) PostgREST would.
    """

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self._hooks: list[dict] = []
        self._counter = 0
        self.writes: list[tuple[str, str, list]] = []
        self.id_columns: dict[str, str] = {"import_runs": "import_run_id"}
        self.unique: dict[str, list[tuple[str, ...]]] = {}

        for config in ENTITY_REGISTRY.values():
            self.id_columns[config.table] = config.id_column
            self.unique[config.table] = [(config.name_column,)]
            if config.staging_table:
                self.id_columns[config.staging_table] = "staging_id"
            for link in config.links:
                self.unique[link.table] = [tuple(link.unique_columns)]

    def set_table_data(self, table_name: str, data: list):
        """Replace the contents of a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        """Live row list of a table (mutating it changes the table)."""
        return self._tables.setdefault(table_name, [])

    def table(self, name: str) -> FakeSupabaseQuery:
        return FakeSupabaseQuery(self, name)

    def next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def writes_to(self, table_name: str) -> list[tuple[str, str, list]]:
        return [w for w in self.writes if w[1] == table_name]

    def on_execute(
        self,
        table_name: str,
        op: str,
        action: Callable[[], None],
        times: int = 1
    ):
        """
        Run action just before the next `times` executions of op on table.

        The action may mutate tables (simulate a concurrent writer) or raise.
        """
        self._hooks.append({"table": table_name, "op": op, "action": action, "times": times})

    def fail_on(self, table_name: str, op: str, error: Optional[Exception] = None, times: int = 1):
        """Make the next `times` executions of op on table raise."""
        exc = error or APIError({"code": "08006", "message": "connection failure"})

        def raise_error():
            raise exc

        self.on_execute(table_name, op, raise_error, times)

    def _run_hooks(self, table_name: str, op: str):
        for hook in self._hooks:
            if hook["table"] == table_name and hook["op"] == op and hook["times"] > 0:
                hook["times"] -= 1
                hook["action"]()

    def _check_unique(self, table_name: str, row: dict, existing: list[dict]):
        for columns in self.unique.get(table_name, []):
            if any(c not in row for c in columns):
                continue
            key = tuple(row[c] for c in columns)
            if any(tuple(other.get(c) for c in columns) == key for other in existing):
                raise APIError({
                    "code": "23505",
                    "message": f'duplicate key value violates unique constraint "{table_name}_unique"',
                    "details": f"Key ({', '.join(columns)})=({', '.join(map(str, key))}) already exists.",
                    "hint": None,
                })


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = [
    "services.catalog_service",
    "services.link_service",
    "services.import_run_service",
    "services.staging_service",
]


def _reset_service_caches():
    from services import (
        catalog_service,
        link_service,
        match_service,
        import_run_service,
        staging_service,
        commit_service,
    )

    catalog_service._services.clear()
    staging_service._services.clear()
    link_service._service = None
    match_service._service = None
    import_run_service._service = None
    commit_service._service = None


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    """
    Create an empty in-memory Supabase client.

    Usage:
        def test_something(fake_supabase):
            fake_supabase.set_table_data("core_brands", [
                {"brand_id": "b-1", "brand_name": "Glenlivet"}
            ])
    """
    return FakeSupabaseClient()


@pytest.fixture
def mock_db(fake_supabase) -> Generator:
    """
    Patch every service's database client with the fake.

    Service singletons are reset before and after so each test gets
    instances bound to its own fake.
    """
    _reset_service_caches()

    patches = [
        patch(f"{module}.get_supabase_client", return_value=fake_supabase)
        for module in SERVICE_MODULES
    ]
    patches.append(patch("config.database.get_supabase_client", return_value=fake_supabase))

    for p in patches:
        p.start()
    try:
        yield fake_supabase
    finally:
        for p in reversed(patches):
            p.stop()
        _reset_service_caches()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, fake_supabase):
            fake_supabase.set_table_data("core_brands", [...])
            response = test_client_with_mock_db.post("/api/import/brand/validate", ...)
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
