"""SQLite storage adapter.

Implements the core UserStorePort using a simple SQLite database. API keys
are sealed before they touch the disk.
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from adapters.secretbox import SecretBox
from core.errors import StorageError
from core.models import UserSettings


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the UserStorePort contract."""

    def __init__(self, db_path: str, secret_box: SecretBox) -> None:
        self._db_path = db_path
        self._box = secret_box

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
            conn.row_factory = sqlite3.Row
            try:
                with conn:
                    yield conn
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - users: per-Telegram-user server address, sealed API key and the
          last successful save (shown by /status)
        """

        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, mode=0o700, exist_ok=True)

        with self._connect() as conn:
            # Fields:
            # - telegram_user_id: Telegram user id (PRIMARY KEY)
            # - server_base_url: normalized https://host[:port]
            # - api_key_ciphertext_b64 / api_key_nonce_b64: AES-GCM sealed key
            # - last_success_at / last_success_id: latest created bookmark
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    telegram_user_id INTEGER PRIMARY KEY,
                    server_base_url TEXT NOT NULL DEFAULT '',
                    api_key_ciphertext_b64 TEXT NOT NULL DEFAULT '',
                    api_key_nonce_b64 TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_success_at TEXT,
                    last_success_id TEXT
                )
                """
            )

    def upsert_user(self, user_id: int) -> None:
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (telegram_user_id, created_at, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(telegram_user_id) DO UPDATE SET updated_at = excluded.updated_at
                """,
                (user_id, now, now),
            )

    def get_user(self, user_id: int) -> UserSettings:
        """Return the user's settings with the API key decrypted.

        Unknown users get empty settings. Raises CredentialError when a stored
        key cannot be decrypted (for example after a master key change).
        """

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT server_base_url, api_key_ciphertext_b64, api_key_nonce_b64,
                       last_success_at, last_success_id
                FROM users WHERE telegram_user_id = ?
                """,
                (user_id,),
            ).fetchone()
        if row is None:
            return UserSettings(user_id=user_id)

        api_key = None
        ciphertext = (row["api_key_ciphertext_b64"] or "").strip()
        nonce = (row["api_key_nonce_b64"] or "").strip()
        if ciphertext and nonce:
            api_key = self._box.open(nonce, ciphertext)

        return UserSettings(
            user_id=user_id,
            server_base_url=row["server_base_url"] or "",
            api_key=api_key,
            last_success_at=_parse_time(row["last_success_at"]),
            last_success_id=row["last_success_id"],
        )

    def set_server_base_url(self, user_id: int, server_base_url: str) -> None:
        if not server_base_url.strip():
            raise ValueError("server base url is empty")
        self.upsert_user(user_id)
        with self._connect() as conn:
            conn.execute(
                "UPDATE users SET server_base_url = ?, updated_at = ? WHERE telegram_user_id = ?",
                (server_base_url, _now(), user_id),
            )

    def set_api_key(self, user_id: int, api_key: str) -> None:
        if not api_key.strip():
            raise ValueError("api key is empty")
        nonce, ciphertext = self._box.seal(api_key.strip())
        self.upsert_user(user_id)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE users
                SET api_key_ciphertext_b64 = ?, api_key_nonce_b64 = ?, updated_at = ?
                WHERE telegram_user_id = ?
                """,
                (ciphertext, nonce, _now(), user_id),
            )

    def record_success(self, user_id: int, bookmark_id: str) -> None:
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE users SET last_success_at = ?, last_success_id = ?, updated_at = ?
                WHERE telegram_user_id = ?
                """,
                (now, bookmark_id, now, user_id),
            )
