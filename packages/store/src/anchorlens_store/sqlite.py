"""SQLiteStore — local file-based dismissal ledger.

The default backend. One file per workspace keeps dismissals scoped to the
repository they were made in.

Schema:
  dismissed_issues: one row per dismissed identity key. The whole table is
                    rewritten in a single transaction on every save, so a
                    reader never sees a half-written set.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone

from anchorlens_store.base import BaseStore, StoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS dismissed_issues (
    key             TEXT PRIMARY KEY,
    dismissed_at    TEXT
);
"""


class SQLiteStore(BaseStore):
    """Stores dismissed keys in a local SQLite database file.

    The database file path defaults to `.anchorlens.db` in the current working
    directory. Configure via .anchorlens.yml: `store_path: /path/to/ledger.db`.
    """

    def __init__(self, db_path: str = ".anchorlens.db"):
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not open {db_path}: {e}") from e

    def load_dismissed(self) -> set[str]:
        try:
            rows = self._conn.execute("SELECT key FROM dismissed_issues").fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read dismissed issues: {e}") from e
        return {row["key"] for row in rows}

    def save_dismissed(self, keys: set[str]) -> None:
        # Keep the original timestamp for keys that were already dismissed.
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._conn:
                existing = {
                    row["key"]: row["dismissed_at"]
                    for row in self._conn.execute("SELECT key, dismissed_at FROM dismissed_issues")
                }
                self._conn.execute("DELETE FROM dismissed_issues")
                self._conn.executemany(
                    "INSERT INTO dismissed_issues (key, dismissed_at) VALUES (?, ?)",
                    [(key, existing.get(key, now)) for key in sorted(keys)],
                )
        except sqlite3.Error as e:
            raise StoreError(f"Could not write dismissed issues: {e}") from e
        logger.debug("Persisted %d dismissed key(s)", len(keys))

    def dismissed_at(self, key: str) -> str | None:
        row = self._conn.execute("SELECT dismissed_at FROM dismissed_issues WHERE key=?", (key,)).fetchone()
        return row["dismissed_at"] if row else None

    def close(self) -> None:
        self._conn.close()
