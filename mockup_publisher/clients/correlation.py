"""Short-lived storage for PKCE correlation entries keyed by OAuth state token."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Protocol

from mockup_publisher.models.oauth import OAuthCorrelationEntry


class CorrelationStore(Protocol):
    """Keyed store used by the PKCE flow.

    ``pop`` must be atomic: a state token can be returned at most once.
    """

    def insert(self, entry: OAuthCorrelationEntry) -> None: ...

    def pop(self, state_token: str) -> Optional[OAuthCorrelationEntry]: ...

    def purge_expired(self, cutoff: datetime) -> int: ...


class InMemoryCorrelationStore:
    """Process-local store guarded by a lock."""

    def __init__(self) -> None:
        self._entries: Dict[str, OAuthCorrelationEntry] = {}
        self._lock = threading.Lock()

    def insert(self, entry: OAuthCorrelationEntry) -> None:
        with self._lock:
            self._entries[entry.state_token] = entry

    def pop(self, state_token: str) -> Optional[OAuthCorrelationEntry]:
        with self._lock:
            return self._entries.pop(state_token, None)

    def purge_expired(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [
                token
                for token, entry in self._entries.items()
                if entry.created_at < cutoff
            ]
            for token in stale:
                del self._entries[token]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteCorrelationStore:
    """Correlation entries persisted in SQLite so they survive worker restarts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_table()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_correlations (
                    state_token TEXT PRIMARY KEY,
                    code_verifier TEXT NOT NULL,
                    owning_user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def insert(self, entry: OAuthCorrelationEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO oauth_correlations (state_token, code_verifier, owning_user_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    entry.state_token,
                    entry.code_verifier,
                    entry.owning_user_id,
                    entry.created_at.isoformat(),
                ),
            )

    def pop(self, state_token: str) -> Optional[OAuthCorrelationEntry]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT * FROM oauth_correlations WHERE state_token = ?",
                (state_token,),
            ).fetchone()
            if row is None:
                conn.execute("COMMIT")
                return None
            conn.execute(
                "DELETE FROM oauth_correlations WHERE state_token = ?",
                (state_token,),
            )
            conn.execute("COMMIT")
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

        return OAuthCorrelationEntry(
            state_token=row["state_token"],
            code_verifier=row["code_verifier"],
            owning_user_id=row["owning_user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def purge_expired(self, cutoff: datetime) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM oauth_correlations WHERE created_at < ?",
                (cutoff.isoformat(),),
            )
        return cursor.rowcount


__all__ = [
    "CorrelationStore",
    "InMemoryCorrelationStore",
    "SQLiteCorrelationStore",
]
