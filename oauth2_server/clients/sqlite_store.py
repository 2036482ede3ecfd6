"""SQLite-backed key-value record storage shared by clients, codes and tokens."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from oauth2_server.core.errors import StorageError

Key = Tuple[str, str]


class ItemExistsError(StorageError):
    """Raised when an insert targets a key that is already present."""

    code = "duplicate_key"
    message = "A record with this key already exists."


def _require_keys(item: Dict[str, Any]) -> Key:
    pk = item.get("pk")
    sk = item.get("sk")
    if not pk or not sk:
        raise ValueError("Item must include 'pk' and 'sk' keys")
    return pk, sk


class SQLiteStore:
    """Simple key-value store using a normalized table keyed by (pk, sk).

    ``pk`` groups related records (a client and its codes, a user and its
    token index entries); ``sk`` identifies the record within the group.
    Every public method is a single transaction.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=10.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def put_item(self, item: Dict[str, Any]) -> None:
        pk, sk = _require_keys(item)
        data_json = json.dumps(item)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_records (pk, sk, data)
                    VALUES (?, ?, ?)
                    ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                    """,
                    (pk, sk, data_json),
                )
        except sqlite3.Error as exc:
            raise StorageError() from exc

    def insert_item(self, item: Dict[str, Any]) -> None:
        """Store ``item`` only if its key is free; raise ``ItemExistsError`` otherwise."""
        self.transact(inserts=[item])

    def transact(
        self,
        *,
        inserts: Iterable[Dict[str, Any]] = (),
        puts: Iterable[Dict[str, Any]] = (),
        deletes: Iterable[Key] = (),
    ) -> None:
        """Apply inserts, upserts and deletes atomically.

        Inserts fail the whole batch when any key already exists.
        """
        try:
            with self._connect() as conn:
                conn.execute("BEGIN IMMEDIATE")
                for item in inserts:
                    pk, sk = _require_keys(item)
                    conn.execute(
                        "INSERT INTO kv_records (pk, sk, data) VALUES (?, ?, ?)",
                        (pk, sk, json.dumps(item)),
                    )
                for item in puts:
                    pk, sk = _require_keys(item)
                    conn.execute(
                        """
                        INSERT INTO kv_records (pk, sk, data)
                        VALUES (?, ?, ?)
                        ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                        """,
                        (pk, sk, json.dumps(item)),
                    )
                for pk, sk in deletes:
                    conn.execute(
                        "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                        (pk, sk),
                    )
        except sqlite3.IntegrityError as exc:
            raise ItemExistsError() from exc
        except sqlite3.Error as exc:
            raise StorageError() from exc

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def pop_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        """Delete an item and return its prior value, or None if it was absent.

        The read and the delete share one write-locked transaction, so two
        concurrent callers can never both receive the same item.
        """
        try:
            with self._connect() as conn:
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute(
                    "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                    (partition_key, sort_key),
                ).fetchone()
                if row:
                    conn.execute(
                        "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                        (partition_key, sort_key),
                    )
        except sqlite3.Error as exc:
            raise StorageError() from exc
        if not row:
            return None
        return json.loads(row["data"])

    def delete_item(self, *, partition_key: str, sort_key: str) -> bool:
        """Delete an item; deleting a missing key is a no-op returning False."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                    (partition_key, sort_key),
                )
        except sqlite3.Error as exc:
            raise StorageError() from exc
        return cursor.rowcount > 0

    def delete_partition(self, *, partition_key: str) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM kv_records WHERE pk = ?",
                    (partition_key,),
                )
        except sqlite3.Error as exc:
            raise StorageError() from exc
        return cursor.rowcount

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND substr(sk, 1, ?) = ?",
                (partition_key, len(sort_key_prefix), sort_key_prefix),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]

    def scan_items(
        self, *, partition_key_prefix: str, sort_key: str
    ) -> list[Dict[str, Any]]:
        """Return every item with the given sort key across matching partitions."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT data FROM kv_records
                WHERE sk = ? AND substr(pk, 1, ?) = ?
                ORDER BY pk
                """,
                (sort_key, len(partition_key_prefix), partition_key_prefix),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["ItemExistsError", "SQLiteStore"]
