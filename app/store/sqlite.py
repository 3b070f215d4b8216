import logging
import os
import sqlite3
from collections.abc import Iterator

from app.store.base import KVStore
from app.utils.errors import StoreError

logger = logging.getLogger(__name__)


class SqliteStore(KVStore):
    """Post records in a single SQLite table keyed by post id."""

    def __init__(self, path: str):
        self.path = path
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        try:
            # Access is serialized by the board lock, so one shared connection is enough
            self.conn = sqlite3.connect(path, check_same_thread=False)
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS posts (
                    key BLOB PRIMARY KEY,
                    value BLOB NOT NULL
                );
                """
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open store at {path}: {exc}") from exc
        logger.info("[Store] opened sqlite store path=%s", path)

    def put(self, key: bytes, value: bytes) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT OR REPLACE INTO posts (key, value) VALUES (?, ?)",
                    (bytes(key), bytes(value)),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"put failed for key {key!r}: {exc}") from exc

    def get(self, key: bytes) -> bytes | None:
        try:
            row = self.conn.execute(
                "SELECT value FROM posts WHERE key=?", (bytes(key),)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"get failed for key {key!r}: {exc}") from exc
        return bytes(row[0]) if row else None

    def scan_all(self) -> Iterator[tuple[bytes, bytes]]:
        try:
            cursor = self.conn.execute("SELECT key, value FROM posts")
            for key, value in cursor:
                yield bytes(key), bytes(value)
        except sqlite3.Error as exc:
            raise StoreError(f"scan failed: {exc}") from exc

    def close(self) -> None:
        self.conn.close()
