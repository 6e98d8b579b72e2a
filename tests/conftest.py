"""
Shared test fixtures.

The mock Supabase client keeps real in-memory tables so services can be
exercised end to end: filters (eq/neq/in_/ilike/or_), ordering, limits,
insert/update/delete and a storage bucket.
"""

import os
import re
import sys
from pathlib import Path

# Settings are loaded at import time and require these
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from contextlib import ExitStack
from unittest.mock import patch
from datetime import datetime, timedelta
from typing import Any, Generator, Optional

# ===================
# MOCK SUPABASE CLIENT
# ===================

_BASE_TIME = datetime(2025, 3, 1, 12, 0, 0)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        else:
            self.count = len(self.data) if isinstance(self.data, list) else (1 if self.data else 0)


def _like_to_regex(pattern: str) -> re.Pattern:
    """Translate a LIKE pattern (% _ and backslash escapes) to a regex."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$", re.IGNORECASE | re.DOTALL)


def _split_or(expr: str) -> list[str]:
    """Split an or() filter on commas outside double quotes."""
    parts, current, quoted, escaped = [], [], False, False
    for ch in expr:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            current.append(ch)
            escaped = True
        elif ch == '"':
            current.append(ch)
            quoted = not quoted
        elif ch == "," and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
        value = re.sub(r"\\(.)", r"\1", value)
    return value


class MockSupabaseQuery:
    """Chainable query builder over one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list = []
        self._order: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._is_single = False
        self._count_requested = False

    # Operations

    def select(self, *args, **kwargs):
        self._op = "select"
        self._count_requested = kwargs.get("count") is not None
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def ilike(self, column, pattern):
        regex = _like_to_regex(pattern)
        self._filters.append(lambda row: regex.match(str(row.get(column) or "")) is not None)
        return self

    def or_(self, expr):
        conditions = []
        for part in _split_or(expr):
            column, op, value = part.split(".", 2)
            value = _unquote(value)
            if op != "eq":
                raise NotImplementedError(f"or_ operator {op}")
            conditions.append((column, value))
        self._filters.append(
            lambda row: any(str(row.get(c)) == v for c, v in conditions)
        )
        return self

    # Modifiers

    def order(self, column, desc=False, **kwargs):
        self._order.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        error = self._client._errors.get((self._table, self._op))
        if error:
            raise Exception(error)

        rows = self._client._tables.setdefault(self._table, [])

        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", self._client._next_id(self._table))
                row.setdefault("created_at", self._client._next_timestamp())
                rows.append(row)
                inserted.append(dict(row))
            return MockSupabaseResponse(data=inserted)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return MockSupabaseResponse(data=updated)

        if self._op == "delete":
            removed = [row for row in rows if self._matches(row)]
            self._client._tables[self._table] = [row for row in rows if not self._matches(row)]
            return MockSupabaseResponse(data=[dict(r) for r in removed])

        result = [dict(row) for row in rows if self._matches(row)]
        total = len(result)
        for column, desc in reversed(self._order):
            result.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self._range is not None:
            start, end = self._range
            result = result[start:end + 1]
        if self._limit is not None:
            result = result[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=result[0] if result else None)
        return MockSupabaseResponse(data=result, count=total if self._count_requested else None)


class MockSupabaseTable:
    """Entry point returned by client.table(name)."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._client, self._name).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name).insert(data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name).update(data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name).delete()


class MockStorageBucket:
    """In-memory storage bucket."""

    def __init__(self, name: str):
        self.name = name
        self.objects: dict[str, bytes] = {}
        self.fail_uploads_containing: set[str] = set()
        self.fail_remove = False

    def upload(self, path, file, file_options=None):
        if any(token in path for token in self.fail_uploads_containing):
            raise Exception(f"upload rejected: {path}")
        self.objects[path] = file
        return {"Key": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def list(self, path=None, options=None):
        options = options or {}
        prefix = f"{path.rstrip('/')}/" if path else ""
        names = sorted(k[len(prefix):] for k in self.objects if k.startswith(prefix))
        offset = options.get("offset", 0)
        limit = options.get("limit", 100)
        return [{"name": n} for n in names[offset:offset + limit]]

    def remove(self, paths):
        if self.fail_remove:
            raise Exception("remove rejected")
        for p in paths:
            self.objects.pop(p, None)
        return [{"name": p} for p in paths]


class MockStorage:
    def __init__(self):
        self.buckets: dict[str, MockStorageBucket] = {}

    def from_(self, bucket: str) -> MockStorageBucket:
        return self.buckets.setdefault(bucket, MockStorageBucket(bucket))


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self._errors: dict[tuple[str, str], str] = {}
        self._id_counter = 0
        self._time_counter = 0
        self.storage = MockStorage()

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table (rows are copied)."""
        self._tables[table_name] = [dict(row) for row in data]

    def get_table_data(self, table_name: str) -> list[dict]:
        return self._tables.get(table_name, [])

    def set_error(self, table_name: str, operation: str, message: str = "boom"):
        """Make every `operation` on the table raise."""
        self._errors[(table_name, operation)] = message

    def clear_error(self, table_name: str, operation: str):
        self._errors.pop((table_name, operation), None)

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, name)

    def _next_id(self, table: str) -> str:
        self._id_counter += 1
        return f"{table}-{self._id_counter}"

    def _next_timestamp(self) -> str:
        self._time_counter += 1
        return (_BASE_TIME + timedelta(seconds=self._time_counter)).isoformat() + "Z"


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = [
    "config.database",
    "services.category_service",
    "services.product_service",
    "services.storage_service",
    "services.import_job_service",
]


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "Leche 1L", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any service constructed inside the test gets the mock from
    get_supabase_client(). Import sessions are cleared afterwards.
    """
    from services.session_cache_service import clear_sessions

    with ExitStack() as stack:
        for module in SERVICE_MODULES:
            stack.enter_context(
                patch(f"{module}.get_supabase_client", return_value=mock_supabase)
            )
        stack.enter_context(
            patch("services.storage_service.get_admin_client", return_value=None)
        )
        yield mock_supabase
    clear_sessions()


@pytest.fixture
def product_bucket(mock_supabase) -> MockStorageBucket:
    """The bucket images are uploaded to."""
    from config import settings
    return mock_supabase.storage.from_(settings.storage_bucket)


@pytest.fixture
def categories() -> list[dict]:
    """Active categories."""
    return [
        {"id": "cat-dairy", "name": "Dairy", "icon": "🥛", "is_active": True},
        {"id": "cat-produce", "name": "Fresh Produce", "icon": "🥬", "is_active": True},
        {"id": "cat-pantry", "name": "Pantry", "icon": "🥫", "is_active": True},
    ]


@pytest.fixture
def seeded_db(mock_db, categories):
    """Mock DB with categories loaded and empty catalog/job tables."""
    mock_db.set_table_data("categories", categories)
    mock_db.set_table_data("products", [])
    mock_db.set_table_data("import_jobs", [])
    mock_db.set_table_data("import_items", [])
    return mock_db


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(seeded_db):
    """
    FastAPI test client whose services use the mock database.

    Route getters are patched to fresh service instances built on the mock.
    """
    from fastapi.testclient import TestClient
    from main import app
    from services.import_job_service import ImportJobService
    from services.import_session_service import ImportSessionService
    from services.storage_service import StorageService
    from services.template_service import TemplateService

    session_service = ImportSessionService()
    with ExitStack() as stack:
        stack.enter_context(patch("routes.imports.get_import_session_service", return_value=session_service))
        stack.enter_context(patch("routes.imports.get_import_job_service", return_value=ImportJobService()))
        stack.enter_context(patch("routes.imports.get_storage_service", return_value=StorageService()))
        stack.enter_context(patch("routes.imports.get_template_service", return_value=TemplateService()))
        yield TestClient(app)
