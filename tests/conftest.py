"""Pytest configuration and fixtures."""

import base64
import json
import operator
import os
import time
import uuid
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# Shared HS256 secret; the signing key JWK below is its "oct" encoding.
TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests-0123456789"
TEST_SIGNING_KEY_JWK = json.dumps(
    {
        "kty": "oct",
        "k": base64.urlsafe_b64encode(TEST_JWT_SECRET.encode()).rstrip(b"=").decode(),
    }
)

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", TEST_SIGNING_KEY_JWK)


def create_test_token(
    sub: str = "user_2abc",
    email: str | None = "test@example.com",
    role: str | None = None,
    exp_offset: int = 3600,
    secret: str = TEST_JWT_SECRET,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create an HS256 test JWT.

    Args:
        sub: Subject (user ID).
        email: User email.
        role: User role.
        exp_offset: Seconds from now for expiration (negative for expired).
        secret: Secret used for signing.
        extra_claims: Additional claims merged into the payload.

    Returns:
        str: Encoded JWT token.
    """
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": sub,
        "exp": now + exp_offset,
        "iat": now,
        "iss": "https://clerk.test.dev",
    }
    if email is not None:
        payload["email"] = email
    if role is not None:
        payload["role"] = role
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(sub: str = "user_2abc", **kwargs: Any) -> dict[str, str]:
    """Authorization header carrying a fresh test token for ``sub``."""
    return {"Authorization": f"Bearer {create_test_token(sub=sub, **kwargs)}"}


class _Result:
    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {"eq": operator.eq, "lt": operator.lt}


def _split_terms(expr: str) -> list[str]:
    """Split a PostgREST logic expression on commas outside parentheses."""
    terms, depth, start = [], 0, 0
    for i, ch in enumerate(expr):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            terms.append(expr[start:i])
            start = i + 1
    terms.append(expr[start:])
    return terms


def _parse_term(term: str) -> Callable[[dict[str, Any]], bool]:
    """Parse ``col.op.value``, ``and(...)`` or ``or(...)`` into a row predicate."""
    for combinator, combine in (("and(", all), ("or(", any)):
        if term.startswith(combinator):
            parts = [_parse_term(t) for t in _split_terms(term[len(combinator) : -1])]
            return lambda row: combine(p(row) for p in parts)

    column, op, raw = term.split(".", 2)
    return lambda row: _OPERATORS[op](row[column], type(row[column])(raw))


class _Query:
    """Subset of the PostgREST query builder used by the services."""

    def __init__(self, table: "InMemoryTable") -> None:
        self._table = table
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._orders: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._insert: dict[str, Any] | None = None

    def select(self, *_columns: str) -> "_Query":
        return self

    def insert(self, row: dict[str, Any]) -> "_Query":
        self._insert = row
        return self

    def eq(self, column: str, value: Any) -> "_Query":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column: str, value: Any) -> "_Query":
        self._filters.append(lambda row: row[column] < value)
        return self

    def or_(self, filters: str) -> "_Query":
        terms = [_parse_term(t) for t in _split_terms(filters)]
        self._filters.append(lambda row: any(t(row) for t in terms))
        return self

    def order(self, column: str, desc: bool = False) -> "_Query":
        self._orders.append((column, desc))
        return self

    def limit(self, count: int) -> "_Query":
        self._limit = count
        return self

    def execute(self) -> _Result:
        if self._insert is not None:
            return _Result([self._table.add(self._insert)])

        rows = [row for row in self._table.rows if all(f(row) for f in self._filters)]
        # Stable sorts, least significant key first.
        for column, desc in reversed(self._orders):
            rows.sort(key=lambda row, c=column: row[c], reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return _Result([dict(row) for row in rows])


class InMemoryTable:
    """Single table that assigns uuid ids on insert."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []

    def add(self, row: dict[str, Any]) -> dict[str, Any]:
        stored = {"id": str(uuid.uuid4()), **row}
        self.rows.append(stored)
        return dict(stored)


class InMemorySupabase:
    """Test double for the Supabase client's table API."""

    def __init__(self) -> None:
        self.tables: dict[str, InMemoryTable] = {}

    def table(self, name: str) -> _Query:
        return _Query(self.tables.setdefault(name, InMemoryTable()))

    def seed(self, row: dict[str, Any], name: str = "messages") -> dict[str, Any]:
        return self.tables.setdefault(name, InMemoryTable()).add(row)

    def rows(self, name: str = "messages") -> list[dict[str, Any]]:
        return list(self.tables.get(name, InMemoryTable()).rows)


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Reload settings and the signing key for every test."""
    from message_board.api.middleware.auth import get_signing_key
    from message_board.core.config import get_settings

    get_settings.cache_clear()
    get_signing_key.cache_clear()
    yield
    get_settings.cache_clear()
    get_signing_key.cache_clear()


@pytest.fixture
def lenient_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Switch the message list to the lenient identity policy."""
    from message_board.core.config import get_settings

    monkeypatch.setenv("MESSAGES_LIST_POLICY", "lenient")
    get_settings.cache_clear()


@pytest.fixture
def fake_supabase() -> Generator[InMemorySupabase, None, None]:
    """Provide an in-memory store wired into the message service.

    Yields:
        InMemorySupabase: The store the service reads and writes.
    """
    store = InMemorySupabase()
    with patch("message_board.services.message_service.get_supabase_client", return_value=store):
        yield store


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client for the health probe.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("message_board.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(
    mock_supabase_client: MagicMock, fake_supabase: InMemorySupabase
) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked client for the health probe.
        fake_supabase: In-memory store behind the message routes.

    Yields:
        TestClient: FastAPI test client.
    """
    from message_board.main import app

    with TestClient(app) as test_client:
        yield test_client
