try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from mockup_publisher.clients.correlation import (
    InMemoryCorrelationStore,
    SQLiteCorrelationStore,
)
from mockup_publisher.models.oauth import OAuthCorrelationEntry

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryCorrelationStore()
    return SQLiteCorrelationStore(str(tmp_path / "correlation.db"))


def _entry(token: str, created_at: datetime = T0) -> OAuthCorrelationEntry:
    return OAuthCorrelationEntry(
        state_token=token,
        code_verifier=f"verifier-{token}",
        owning_user_id="owner@example.com",
        created_at=created_at,
    )


def test_pop_returns_entry_once(store) -> None:
    store.insert(_entry("state-1"))

    entry = store.pop("state-1")

    assert entry is not None
    assert entry.code_verifier == "verifier-state-1"
    assert entry.owning_user_id == "owner@example.com"
    assert entry.created_at == T0
    assert store.pop("state-1") is None


def test_purge_expired_removes_only_older_entries(store) -> None:
    store.insert(_entry("old", T0))
    store.insert(_entry("new", T0 + timedelta(minutes=9)))

    removed = store.purge_expired(T0 + timedelta(minutes=1))

    assert removed == 1
    assert store.pop("old") is None
    assert store.pop("new") is not None


def test_concurrent_pops_hand_out_entry_once(store) -> None:
    store.insert(_entry("contended"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: store.pop("contended"), range(8)))

    assert sum(result is not None for result in results) == 1
