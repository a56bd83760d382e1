"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteStore:
    """Fresh relational store per test."""
    return SQLiteStore(str(tmp_path / "mockup_publisher.db"))


@pytest.fixture
def token_cipher() -> TokenCipherService:
    return TokenCipherService(secret="test-secret")
