"""
Shared test fixtures.

The Supabase client is replaced by an in-memory store that understands the
query-builder calls the services make, so service and API tests exercise
real filtering and writes without a database.
"""

import os
import re
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from tests.factories import UserFactory


# ===================
# MOCK SUPABASE CLIENT
# ===================

TIMESTAMP_COLUMNS = {
    "baskets": "added_at",
    "funding": "funded_at",
    "event_volunteers": "signed_up_at",
}

CLOCK_START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _coerce(value: Any) -> Any:
    """Make ISO timestamps comparable with each other."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _like_to_regex(pattern: str) -> "re.Pattern":
    """Translate a LIKE pattern (% and _ wildcards, backslash escapes) to a regex."""
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Chainable query against one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str, op: str, payload: Any = None, **options):
        self._client = client
        self._table = table
        self._op = op
        self._payload = payload
        self._options = options
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._offset = 0
        self._single = False

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def ilike(self, column, pattern):
        regex = _like_to_regex(pattern)
        self._filters.append(
            lambda row: row.get(column) is not None and regex.fullmatch(str(row.get(column))) is not None
        )
        return self

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        self._filters.append(lambda row: row.get(column) is expected)
        return self

    def gte(self, column, value):
        self._filters.append(
            lambda row: row.get(column) is not None and _coerce(row.get(column)) >= _coerce(value)
        )
        return self

    def lte(self, column, value):
        self._filters.append(
            lambda row: row.get(column) is not None and _coerce(row.get(column)) <= _coerce(value)
        )
        return self

    # Modifiers

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        self._offset = start
        self._limit = end - start + 1
        return self

    def single(self):
        self._single = True
        return self

    # Execution

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def _sorted(self, rows: list[dict]) -> list[dict]:
        for column, desc in reversed(self._order):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: _coerce(r.get(column)), reverse=desc)
            rows = present + missing
        return rows

    def execute(self) -> MockSupabaseResponse:
        self._client._check_failure(self._table, self._op)
        rows = self._client.tables.setdefault(self._table, [])

        if self._op == "select":
            matched = self._sorted([dict(r) for r in rows if self._matches(r)])
            count = len(matched) if self._options.get("count") else None
            matched = matched[self._offset:]
            if self._limit is not None:
                matched = matched[:self._limit]
            if self._single:
                return MockSupabaseResponse(matched[0] if matched else None, count)
            return MockSupabaseResponse(matched, count)

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            created = [self._client._insert_row(self._table, item) for item in payload]
            return MockSupabaseResponse([dict(r) for r in created])

        if self._op == "upsert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            keys = [k.strip() for k in (self._options.get("on_conflict") or "id").split(",")]
            saved = []
            for item in payload:
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)),
                    None
                )
                if existing is not None:
                    existing.update(item)
                    saved.append(dict(existing))
                else:
                    saved.append(dict(self._client._insert_row(self._table, item)))
            return MockSupabaseResponse(saved)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return MockSupabaseResponse(updated)

        if self._op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self._client.tables[self._table] = [r for r in rows if not self._matches(r)]
            return MockSupabaseResponse([dict(r) for r in removed])

        raise ValueError(f"Unsupported operation: {self._op}")


class MockSupabaseTable:
    """Entry point for queries on one table."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *columns, count: Optional[str] = None, **kwargs):
        return MockSupabaseQuery(self._client, self._name, "select", count=count)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def upsert(self, data, on_conflict: Optional[str] = None, **kwargs):
        return MockSupabaseQuery(self._client, self._name, "upsert", data, on_conflict=on_conflict)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """
    In-memory stand-in for the Supabase client.

    Rows get integer ids per table and a timestamp that advances one second
    per insert so "newest first" orderings are deterministic.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self._next_ids: dict[str, int] = {}
        self._clock = 0
        self._failures: dict[tuple[str, str], int] = {}

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)

    def _tick(self) -> str:
        self._clock += 1
        return (CLOCK_START + timedelta(seconds=self._clock)).isoformat()

    def _insert_row(self, table: str, item: dict) -> dict:
        row = dict(item)
        if row.get("id") is None:
            row["id"] = self._next_ids.get(table, 1)
        self._next_ids[table] = max(self._next_ids.get(table, 1), row["id"] + 1)
        row.setdefault(TIMESTAMP_COLUMNS.get(table, "created_at"), self._tick())
        self.tables.setdefault(table, []).append(row)
        return row

    def _check_failure(self, table: str, op: str) -> None:
        key = (table, op)
        if key not in self._failures:
            return
        if self._failures[key] > 0:
            self._failures[key] -= 1
            return
        del self._failures[key]
        raise RuntimeError(f"simulated {op} failure on {table}")

    # Test helpers

    def seed(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert rows directly, keeping any ids they carry."""
        return [self._insert_row(table, row) for row in rows]

    def rows(self, table: str) -> list[dict]:
        return [dict(r) for r in self.tables.get(table, [])]

    def get(self, table: str, row_id: int) -> Optional[dict]:
        return next((dict(r) for r in self.tables.get(table, []) if r["id"] == row_id), None)

    def fail_on(self, table: str, op: str, after: int = 0) -> None:
        """Make the (after + 1)-th `op` on `table` raise."""
        self._failures[(table, op)] = after


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = (
    "user_service",
    "need_service",
    "basket_service",
    "funding_service",
    "event_service",
    "reminder_service",
)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an empty in-memory Supabase client.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.seed("needs", [NeedFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase, monkeypatch) -> MockSupabaseClient:
    """
    Route every get_supabase_client() call to the mock and reset service singletons.
    """
    monkeypatch.setattr("config.database.get_supabase_client", lambda: mock_supabase)
    for module in SERVICE_MODULES:
        monkeypatch.setattr(f"services.{module}.get_supabase_client", lambda: mock_supabase)
        monkeypatch.setattr(f"services.{module}._{module}", None)
    return mock_supabase


@pytest.fixture
def manager(mock_db) -> dict:
    """Seeded manager user."""
    return mock_db.seed("users", [UserFactory.create(username="admin", role="manager")])[0]


@pytest.fixture
def helper(mock_db) -> dict:
    """Seeded helper user."""
    return mock_db.seed("users", [UserFactory.create(username="helper1")])[0]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(mock_db):
    """
    FastAPI test client backed by the in-memory database.

    Created without a context manager so the startup connection check is skipped.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/needs")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
