"""
Durable key-value storage for conversation records.

Values are opaque strings (the conversation store writes JSON). Every write
goes straight to the backing store; there is no write-behind buffer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional
import os
import sqlite3
import threading

from config.app_config import StorageConfig
from utils.logging_config import get_logger


class KeyValueStore(ABC):
    """Minimal storage interface in the shape of browser localStorage"""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...

    def close(self) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local storage; contents vanish with the process"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._items)


class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite-backed storage.
    One short-lived connection per operation, committed before returning.
    """

    def __init__(self, db_path: str = "data/voice_assistant.db"):
        """
        Initialize the store

        Args:
            db_path: Path to the SQLite database file
        """
        self.logger = get_logger(__name__)
        self.db_path = db_path
        self._lock = threading.Lock()
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_database(self):
        """Create the key-value table and bring older schemas up to date"""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        try:
            conn = self._connect()
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')

            self._run_migrations(cursor)

            conn.commit()
            conn.close()

            self.logger.info(f"Key-value store initialized at {self.db_path}")

        except sqlite3.Error as e:
            self.logger.error(f"Error initializing key-value store: {e}")
            raise

    def _run_migrations(self, cursor):
        """Run database schema migrations"""
        cursor.execute("PRAGMA table_info(kv_store)")
        columns = [column[1] for column in cursor.fetchall()]

        # Migration 1: tables created before updated_at existed
        if 'updated_at' not in columns:
            self.logger.info("Adding updated_at column to kv_store table")
            cursor.execute("ALTER TABLE kv_store ADD COLUMN updated_at TEXT")
            cursor.execute("UPDATE kv_store SET updated_at = ? WHERE updated_at IS NULL",
                           (datetime.now().isoformat(),))
            self.logger.info("Migration 1 completed: updated_at column added")

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._connect()
            try:
                conn.execute('''
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                ''', (key, value, datetime.now().isoformat()))
                conn.commit()
            finally:
                conn.close()
        self.logger.debug(f"Stored {len(value)} characters under {key}")

    def remove_item(self, key: str) -> None:
        with self._lock:
            conn = self._connect()
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        self.logger.debug(f"Removed {key}")


def create_key_value_store(config: StorageConfig) -> KeyValueStore:
    """Build the storage backend named in the configuration"""
    if config.backend == "memory":
        return InMemoryKeyValueStore()
    if config.backend == "sqlite":
        return SQLiteKeyValueStore(config.db_path)
    raise ValueError(f"Unknown storage backend: {config.backend}")
