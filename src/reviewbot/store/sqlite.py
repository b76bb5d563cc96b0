"""SQLiteStore - single-file document store.

Documents are stored as JSON text in one table, partitioned by collection.
Lookups on the indexed fields use expression indexes over ``json_extract``.
"""

import json
import logging
import re
import sqlite3
import threading
import uuid
from typing import Any

from reviewbot.store.base import INDEXED_FIELDS, DocumentStore

logger = logging.getLogger(__name__)

_FIELD_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT NOT NULL,
    id          TEXT NOT NULL,
    body        TEXT NOT NULL,
    PRIMARY KEY (collection, id)
);
"""


def _json_path(field: str) -> str:
    if not _FIELD_PATTERN.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"$.{field}"


class SQLiteStore(DocumentStore):
    """Stores documents in a local SQLite database file.

    The connection is shared across threads (FastAPI runs sync dependencies
    in a thread pool), so every statement runs under a lock.
    """

    def __init__(self, db_path: str = "reviewbot.db"):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        for field in INDEXED_FIELDS:
            self._conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_documents_{field} "
                f"ON documents (collection, json_extract(body, '{_json_path(field)}'))"
            )
        self._conn.commit()
        logger.debug(f"Opened SQLite store at {db_path}")

    def _load(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT body FROM documents WHERE collection=? AND id=?",
            (collection, doc_id),
        ).fetchone()
        return json.loads(row["body"]) if row else None

    def _write(self, collection: str, doc_id: str, document: dict[str, Any]) -> None:
        body = {k: v for k, v in document.items() if k != "id"}
        self._conn.execute(
            "UPDATE documents SET body=? WHERE collection=? AND id=?",
            (json.dumps(body), collection, doc_id),
        )

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        body = {k: v for k, v in document.items() if k != "id"}
        with self._lock:
            self._conn.execute(
                "INSERT INTO documents (collection, id, body) VALUES (?, ?, ?)",
                (collection, doc_id, json.dumps(body)),
            )
            self._conn.commit()
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._load(collection, doc_id)
        return {**doc, "id": doc_id} if doc is not None else None

    def patch(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            doc = self._load(collection, doc_id)
            if doc is None:
                raise KeyError(f"{collection}/{doc_id} does not exist")
            doc.update(fields)
            self._write(collection, doc_id, doc)
            self._conn.commit()

    def replace(self, collection: str, doc_id: str, document: dict[str, Any]) -> None:
        with self._lock:
            if self._load(collection, doc_id) is None:
                raise KeyError(f"{collection}/{doc_id} does not exist")
            self._write(collection, doc_id, document)
            self._conn.commit()

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM documents WHERE collection=? AND id=?",
                (collection, doc_id),
            )
            self._conn.commit()

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        path = _json_path(field)
        with self._lock:
            rows = self._conn.execute(
                f"SELECT id, body FROM documents "
                f"WHERE collection=? AND json_extract(body, '{path}') = ? "
                f"ORDER BY rowid",
                (collection, value),
            ).fetchall()
        return [{**json.loads(row["body"]), "id": row["id"]} for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
