"""SQLite-backed relational store for users, listings and templates."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

_TOKEN_COLUMNS = {
    "google": "google_tokens",
    "etsy": "etsy_tokens",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStore:
    """Thin persistence layer; every statement is parameterized."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    email TEXT PRIMARY KEY,
                    google_tokens TEXT,
                    etsy_tokens TEXT,
                    etsy_shop_id TEXT,
                    sessions_revoked_at REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS listings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT NOT NULL REFERENCES users(email),
                    marketplace_listing_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    price REAL NOT NULL,
                    tags TEXT NOT NULL,
                    asset_references TEXT NOT NULL,
                    artifact_ref TEXT,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_listings_owner ON listings(owner);
                CREATE TABLE IF NOT EXISTS templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT NOT NULL REFERENCES users(email),
                    name TEXT NOT NULL,
                    content TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT 'section',
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_templates_owner ON templates(owner);
                """
            )
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(users)")}
            if "sessions_revoked_at" not in columns:
                conn.execute("ALTER TABLE users ADD COLUMN sessions_revoked_at REAL")

    # Users -----------------------------------------------------------------

    def upsert_user(self, email: str) -> Dict[str, Any]:
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (email, created_at, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET updated_at = excluded.updated_at
                """,
                (email, now, now),
            )
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return dict(row)

    def get_user(self, email: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return dict(row) if row else None

    def get_provider_tokens(self, email: str, provider: str) -> Optional[str]:
        column = _TOKEN_COLUMNS[provider]
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {column} AS blob FROM users WHERE email = ?", (email,)
            ).fetchone()
        if not row:
            return None
        return row["blob"]

    def set_provider_tokens(self, email: str, provider: str, blob: str) -> None:
        column = _TOKEN_COLUMNS[provider]
        now = _now()
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO users (email, {column}, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    {column} = excluded.{column},
                    updated_at = excluded.updated_at
                """,
                (email, blob, now, now),
            )

    def set_etsy_shop_id(self, email: str, shop_id: Optional[str]) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE users SET etsy_shop_id = ?, updated_at = ? WHERE email = ?",
                (shop_id, _now(), email),
            )

    def revoke_sessions(self, email: str, revoked_at: float) -> None:
        """Sessions issued at or before ``revoked_at`` stop authenticating."""
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (email, sessions_revoked_at, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    sessions_revoked_at = excluded.sessions_revoked_at,
                    updated_at = excluded.updated_at
                """,
                (email, revoked_at, now, now),
            )

    def get_sessions_revoked_at(self, email: str) -> Optional[float]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT sessions_revoked_at FROM users WHERE email = ?", (email,)
            ).fetchone()
        return row["sessions_revoked_at"] if row else None

    # Listings --------------------------------------------------------------

    def insert_listing(self, record: Dict[str, Any]) -> Dict[str, Any]:
        created_at = _now()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO listings (
                    owner, marketplace_listing_id, title, description, price,
                    tags, asset_references, artifact_ref, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record["owner"],
                    record.get("marketplace_listing_id"),
                    record["title"],
                    record["description"],
                    record["price"],
                    json.dumps(record.get("tags", [])),
                    json.dumps(record.get("asset_references", [])),
                    record.get("artifact_ref"),
                    record["status"],
                    created_at,
                ),
            )
            listing_id = cursor.lastrowid
            row = conn.execute("SELECT * FROM listings WHERE id = ?", (listing_id,)).fetchone()
        return self._listing_row(row)

    def get_listing(self, listing_id: int, owner: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM listings WHERE id = ? AND owner = ?",
                (listing_id, owner),
            ).fetchone()
        return self._listing_row(row) if row else None

    def list_listings(self, owner: str) -> list[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM listings WHERE owner = ? ORDER BY created_at DESC, id DESC",
                (owner,),
            ).fetchall()
        return [self._listing_row(row) for row in rows]

    def update_listing_status(self, listing_id: int, owner: str, status: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE listings SET status = ? WHERE id = ? AND owner = ?",
                (status, listing_id, owner),
            )

    @staticmethod
    def _listing_row(row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data["tags"] = json.loads(data["tags"])
        data["asset_references"] = json.loads(data["asset_references"])
        return data

    # Templates -------------------------------------------------------------

    def list_templates(self, owner: str) -> list[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM templates WHERE owner = ? ORDER BY created_at DESC, id DESC",
                (owner,),
            ).fetchall()
        return [self._template_row(row) for row in rows]

    def list_default_templates(self, owner: str) -> list[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM templates WHERE owner = ? AND is_default = 1 ORDER BY id",
                (owner,),
            ).fetchall()
        return [self._template_row(row) for row in rows]

    def get_template(self, template_id: int, owner: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM templates WHERE id = ? AND owner = ?",
                (template_id, owner),
            ).fetchone()
        return self._template_row(row) if row else None

    def clear_default_templates(
        self, owner: str, category: str, exclude_id: Optional[int] = None
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE templates SET is_default = 0, updated_at = ?
                WHERE owner = ? AND category = ? AND id != ?
                """,
                (_now(), owner, category, exclude_id if exclude_id is not None else -1),
            )

    def insert_template(
        self,
        *,
        owner: str,
        name: str,
        content: str,
        category: str,
        is_default: bool,
    ) -> Dict[str, Any]:
        now = _now()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO templates (owner, name, content, category, is_default, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (owner, name, content, category, int(is_default), now, now),
            )
            row = conn.execute(
                "SELECT * FROM templates WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return self._template_row(row)

    def update_template(
        self,
        template_id: int,
        owner: str,
        *,
        name: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
        is_default: Optional[bool] = None,
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE templates
                SET name = COALESCE(?, name),
                    content = COALESCE(?, content),
                    category = COALESCE(?, category),
                    is_default = COALESCE(?, is_default),
                    updated_at = ?
                WHERE id = ? AND owner = ?
                """,
                (
                    name,
                    content,
                    category,
                    None if is_default is None else int(is_default),
                    _now(),
                    template_id,
                    owner,
                ),
            )
            row = conn.execute(
                "SELECT * FROM templates WHERE id = ? AND owner = ?",
                (template_id, owner),
            ).fetchone()
        return self._template_row(row) if row else None

    def delete_template(self, template_id: int, owner: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM templates WHERE id = ? AND owner = ?",
                (template_id, owner),
            )
        return cursor.rowcount > 0

    @staticmethod
    def _template_row(row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data["is_default"] = bool(data["is_default"])
        return data


__all__ = ["SQLiteStore"]
