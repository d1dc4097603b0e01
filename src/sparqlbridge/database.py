"""SQLite database layer for ontology caches.

One row per backend in ``cache_metadata``; elements and namespaces live in
per-kind tables tagged with the backend id and their ordinal position, so
a cache reads back in the order it was stored.  Thread-safe via per-thread
connections (or one shared connection for ``:memory:``).
"""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

_DB_INIT_SQL = """
CREATE TABLE IF NOT EXISTS cache_metadata (
    backend_id   TEXT PRIMARY KEY,
    last_updated INTEGER NOT NULL,      -- epoch milliseconds
    ttl          INTEGER NOT NULL,      -- milliseconds
    version      INTEGER NOT NULL,
    stats        TEXT NOT NULL,         -- CacheStats (json string)
    stored_at    TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS cache_classes (
    backend_id  TEXT NOT NULL,
    position    INTEGER NOT NULL,
    iri         TEXT NOT NULL,
    data        TEXT NOT NULL,
    PRIMARY KEY (backend_id, position)
);

CREATE TABLE IF NOT EXISTS cache_properties (
    backend_id  TEXT NOT NULL,
    position    INTEGER NOT NULL,
    iri         TEXT NOT NULL,
    data        TEXT NOT NULL,
    PRIMARY KEY (backend_id, position)
);

CREATE TABLE IF NOT EXISTS cache_individuals (
    backend_id  TEXT NOT NULL,
    position    INTEGER NOT NULL,
    iri         TEXT NOT NULL,
    data        TEXT NOT NULL,
    PRIMARY KEY (backend_id, position)
);

CREATE TABLE IF NOT EXISTS cache_namespaces (
    backend_id  TEXT NOT NULL,
    position    INTEGER NOT NULL,
    prefix      TEXT NOT NULL,
    namespace   TEXT NOT NULL,
    PRIMARY KEY (backend_id, position)
);

CREATE INDEX IF NOT EXISTS idx_cache_classes_iri ON cache_classes (backend_id, iri);
CREATE INDEX IF NOT EXISTS idx_cache_properties_iri ON cache_properties (backend_id, iri);
CREATE INDEX IF NOT EXISTS idx_cache_individuals_iri ON cache_individuals (backend_id, iri);
"""

#: Element kind -> table
ELEMENT_TABLES = {
    "class": "cache_classes",
    "property": "cache_properties",
    "individual": "cache_individuals",
}
_ALL_TABLES = ("cache_metadata", *ELEMENT_TABLES.values(), "cache_namespaces")


class Database:
    """Simple SQLite wrapper for ontology cache persistence."""

    def __init__(self, db_path: str | Path = "sparqlbridge.db") -> None:
        self._db_path = str(db_path)
        self._is_memory = self._db_path in (":memory:", "")
        self._lock = threading.Lock()

        if self._is_memory:
            # For in-memory databases, use a single shared connection
            # (thread-safety via the lock).
            self._shared_conn = sqlite3.connect(
                ":memory:", check_same_thread=False,
            )
            self._shared_conn.row_factory = sqlite3.Row
        else:
            self._shared_conn = None

        self._local = threading.local()
        self._init_db()

    # -- connection management ------------------------------------------

    @property
    def _conn(self) -> sqlite3.Connection:
        """Return a connection: shared for :memory:, per-thread otherwise."""
        if self._shared_conn is not None:
            return self._shared_conn

        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self._db_path, check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn = conn
        return conn

    def _init_db(self) -> None:
        self._conn.executescript(_DB_INIT_SQL)
        self._conn.commit()

    def close(self) -> None:
        if self._shared_conn is not None:
            # Don't actually close the shared in-memory conn here;
            # it would destroy all data.
            return
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # -- writes ---------------------------------------------------------

    def _delete_rows(self, conn: sqlite3.Connection, backend_id: str) -> int:
        deleted = 0
        for table in _ALL_TABLES:
            cur = conn.execute(
                f"DELETE FROM {table} WHERE backend_id = ?", (backend_id,),
            )
            if table == "cache_metadata":
                deleted = cur.rowcount
        return deleted

    def replace_cache(
        self,
        backend_id: str,
        metadata: dict[str, Any],
        elements: dict[str, Iterable[tuple[str, dict[str, Any]]]],
        namespaces: dict[str, str],
    ) -> None:
        """Replace every row of *backend_id* in a single transaction.

        *elements* maps an element kind (``class``, ``property``,
        ``individual``) to ``(iri, record)`` pairs in order.
        """
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            conn = self._conn
            with conn:
                self._delete_rows(conn, backend_id)
                conn.execute(
                    """
                    INSERT INTO cache_metadata
                        (backend_id, last_updated, ttl, version, stats, stored_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        backend_id,
                        metadata["lastUpdated"],
                        metadata["ttl"],
                        metadata["version"],
                        json.dumps(metadata["stats"]),
                        now,
                    ),
                )
                for kind, table in ELEMENT_TABLES.items():
                    conn.executemany(
                        f"INSERT INTO {table} (backend_id, position, iri, data) "
                        "VALUES (?, ?, ?, ?)",
                        (
                            (backend_id, position, iri, json.dumps(record))
                            for position, (iri, record) in enumerate(elements.get(kind, ()))
                        ),
                    )
                conn.executemany(
                    "INSERT INTO cache_namespaces (backend_id, position, prefix, namespace) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        (backend_id, position, prefix, namespace)
                        for position, (prefix, namespace) in enumerate(namespaces.items())
                    ),
                )

    def delete_cache(self, backend_id: str) -> bool:
        """Delete one backend's cache. Returns True if one existed."""
        with self._lock:
            conn = self._conn
            with conn:
                return self._delete_rows(conn, backend_id) > 0

    def delete_all_caches(self) -> None:
        with self._lock:
            conn = self._conn
            with conn:
                for table in _ALL_TABLES:
                    conn.execute(f"DELETE FROM {table}")

    # -- reads ----------------------------------------------------------

    def get_cache_metadata(self, backend_id: str) -> dict[str, Any] | None:
        """Return the metadata row of *backend_id* in camelCase, or None."""
        row = self._conn.execute(
            "SELECT backend_id, last_updated, ttl, version, stats "
            "FROM cache_metadata WHERE backend_id = ?",
            (backend_id,),
        ).fetchone()
        if row is None:
            return None
        return {
            "backendId": row["backend_id"],
            "lastUpdated": row["last_updated"],
            "ttl": row["ttl"],
            "version": row["version"],
            "stats": json.loads(row["stats"]),
        }

    def get_cache_elements(self, backend_id: str, kind: str) -> list[dict[str, Any]]:
        """Return the stored records of one element kind, in stored order."""
        rows = self._conn.execute(
            f"SELECT data FROM {ELEMENT_TABLES[kind]} "
            "WHERE backend_id = ? ORDER BY position",
            (backend_id,),
        ).fetchall()
        return [json.loads(r["data"]) for r in rows]

    def find_cache_element(
        self, backend_id: str, kind: str, iri: str,
    ) -> dict[str, Any] | None:
        row = self._conn.execute(
            f"SELECT data FROM {ELEMENT_TABLES[kind]} "
            "WHERE backend_id = ? AND iri = ? ORDER BY position LIMIT 1",
            (backend_id, iri),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    def get_cache_namespaces(self, backend_id: str) -> dict[str, str]:
        rows = self._conn.execute(
            "SELECT prefix, namespace FROM cache_namespaces "
            "WHERE backend_id = ? ORDER BY position",
            (backend_id,),
        ).fetchall()
        return {r["prefix"]: r["namespace"] for r in rows}

    def list_cache_backend_ids(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT backend_id FROM cache_metadata ORDER BY backend_id",
        ).fetchall()
        return [r["backend_id"] for r in rows]
