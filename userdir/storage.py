"""Local persistent storage and the session credential kept in it."""

import json
import logging
import math
import sqlite3
import time
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from userdir.models import Credential

# Database schema
CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS local_storage (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

AUTH_STORAGE_KEY = "auth"


def now_millis() -> int:
    return int(time.time() * 1000)


class LocalStorage:
    """Key/value string storage persisted in sqlite, one row per key."""

    def __init__(self, db_file_path: str):
        self.db_file = db_file_path
        self.logger = logging.getLogger(self.__class__.__name__)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database with required tables"""
        try:
            with self._get_connection() as conn:
                conn.executescript(CREATE_TABLE_SQL)
                conn.commit()
                self.logger.debug(f"Local storage initialized: {self.db_file}")
        except sqlite3.Error as e:
            self.logger.critical(
                f"Failed to initialize local storage {self.db_file}: {str(e)}"
            )
            raise

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections with proper error handling"""
        conn = None
        try:
            conn = sqlite3.connect(self.db_file)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            self.logger.error(f"Database error ({self.db_file}): {str(e)}")
            raise
        finally:
            if conn:
                conn.close()

    def get_item(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO local_storage (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, int(time.time())),
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            conn.commit()


class CredentialStore:
    """
    Owns the serialized ``{token, expiresAt}`` record under a single storage key.

    ``read`` expires lazily: a missing, malformed or expired value is removed and
    reported as absent. It never raises.
    """

    def __init__(
        self,
        storage: LocalStorage,
        clock: Callable[[], int] = now_millis,
        key: str = AUTH_STORAGE_KEY,
    ):
        self.storage = storage
        self.clock = clock
        self.key = key
        self.logger = logging.getLogger(self.__class__.__name__)

    def save(self, token: str, ttl_millis: int) -> Credential:
        credential = Credential(token=token, expires_at=self.clock() + ttl_millis)
        payload = json.dumps({"token": credential.token, "expiresAt": credential.expires_at})
        self.storage.set_item(self.key, payload)
        self.logger.info(f"Session credential stored, expires at {credential.expires_at} (epoch ms).")
        return credential

    def read(self) -> Optional[Credential]:
        try:
            raw = self.storage.get_item(self.key)
        except sqlite3.Error as e:
            self.logger.error(f"Could not read session credential: {e}")
            return None

        if raw is None:
            self.logger.debug("No session credential found in storage.")
            return None

        credential = self._parse(raw)
        if credential is None:
            self.logger.warning("Stored session credential is malformed. Clearing it.")
            self.clear()
            return None

        if not credential.is_valid(self.clock()):
            self.logger.info("Stored session credential has expired. Clearing it.")
            self.clear()
            return None

        return credential

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
            self.logger.debug("Session credential cleared.")
        except sqlite3.Error as e:
            self.logger.error(f"Could not clear session credential: {e}")

    @staticmethod
    def _parse(raw: str) -> Optional[Credential]:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(data, dict):
            return None
        token = data.get("token")
        expires_at = data.get("expiresAt")
        if not isinstance(token, str) or not token:
            return None
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            return None
        if not math.isfinite(expires_at):
            return None
        return Credential(token=token, expires_at=int(expires_at))
