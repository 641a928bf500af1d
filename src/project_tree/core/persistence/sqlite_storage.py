"""Single-key value store backed by SQLite."""

import json
import sqlite3
import time
from pathlib import Path
from typing import Any

from loguru import logger

from project_tree.core.persistence.schema import migrate_schema
from project_tree.errors import PersistenceError


class SqliteStorage:
    """JSON values keyed by string, one row per key.

    ``set_item`` replaces the row wholesale; there are no partial updates.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            migrate_schema(self.conn)
        except (OSError, sqlite3.Error) as e:
            msg = f"Cannot open local store {self.db_path!r}: {e}"
            raise PersistenceError(msg) from e
        logger.debug("Local store ready: {}", self.db_path)

    def get_item(self, key: str) -> Any | None:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            msg = f"Cannot read {key!r}: {e}"
            raise PersistenceError(msg) from e
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            msg = f"Stored value for {key!r} is not valid JSON: {e}"
            raise PersistenceError(msg) from e

    def set_item(self, key: str, value: Any) -> None:
        contents = json.dumps(value, sort_keys=True)
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                (key, contents, int(time.time() * 1000)),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            msg = f"Cannot write {key!r}: {e}"
            raise PersistenceError(msg) from e

    def close(self) -> None:
        self.conn.close()
