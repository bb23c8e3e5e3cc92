"""SQLite-backed document metadata repository.

Stores one row per ingested or registered document in the ``docs`` table,
keyed by ``(collection, key)``.  Uses sync ``sqlite3`` behind a lock: every
operation touches a single small row.
"""

import logging
import os
import sqlite3
import threading
from typing import List, Optional

from docmemory.models import Doc

logger = logging.getLogger(__name__)

TABLE_DEFINITION = """\
CREATE TABLE IF NOT EXISTS docs (
    collection  TEXT NOT NULL,
    key         TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location    TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (collection, key)
);
"""

_UPSERT_SQL = """\
INSERT INTO docs (collection, key, description, location)
VALUES (?, ?, ?, ?)
ON CONFLICT(collection, key)
DO UPDATE SET description = excluded.description,
              location    = excluded.location;
"""

_SELECT_SQL = """\
SELECT collection, key, description, location
FROM docs
WHERE collection = ? AND key = ?;
"""

_SELECT_ALL_SQL = """\
SELECT collection, key, description, location
FROM docs
WHERE collection = ?
ORDER BY key;
"""

_DELETE_SQL = "DELETE FROM docs WHERE collection = ? AND key = ?;"


def _row_to_doc(row) -> Doc:
    return Doc(
        collection=row[0],
        key=row[1],
        description=row[2],
        location=row[3],
    )


class DocumentRepository:
    """Key-value style access to document rows."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def initialize(self) -> None:
        """Open the connection and create the table if it doesn't exist."""

        if self._db_path != ":memory:":
            directory = os.path.dirname(os.path.abspath(self._db_path))
            os.makedirs(directory, exist_ok=True)

        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)

        with self._lock:
            self._conn.execute(TABLE_DEFINITION)
            self._conn.commit()

        logger.info("document_db_initialized", extra={"path": self._db_path})

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.initialize()
        return self._conn

    def upsert(self, collection: str, key: str, description: str, location: str) -> Doc:
        conn = self._connection()
        with self._lock:
            conn.execute(_UPSERT_SQL, (collection, key, description, location))
            conn.commit()
        return Doc(collection=collection, key=key, description=description, location=location)

    def get(self, collection: str, key: str) -> Optional[Doc]:
        conn = self._connection()
        with self._lock:
            row = conn.execute(_SELECT_SQL, (collection, key)).fetchone()
        return _row_to_doc(row) if row else None

    def get_all(self, collection: str) -> List[Doc]:
        conn = self._connection()
        with self._lock:
            rows = conn.execute(_SELECT_ALL_SQL, (collection,)).fetchall()
        return [_row_to_doc(row) for row in rows]

    def delete(self, collection: str, key: str) -> int:
        """Delete a row and return the number of affected rows."""
        conn = self._connection()
        with self._lock:
            cursor = conn.execute(_DELETE_SQL, (collection, key))
            conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
