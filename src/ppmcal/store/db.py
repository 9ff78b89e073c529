from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional

from .batch import WriteBatch, WriteOp
from .errors import StoreError

logger = logging.getLogger(__name__)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _json_loads(text: str) -> Any:
    return json.loads(text) if text else None


@dataclass(frozen=True)
class DocumentSnapshot:
    id: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class QuerySnapshot:
    collection: str
    docs: list[DocumentSnapshot] = field(default_factory=list)
    read_time: str = field(default_factory=_iso_now)

    def __iter__(self) -> Iterator[DocumentSnapshot]:
        return iter(self.docs)

    def __len__(self) -> int:
        return len(self.docs)


SnapshotCallback = Callable[[QuerySnapshot], None]


class Subscription:
    """A live query over one collection.

    The callback receives the full, ordered snapshot on registration and
    again after every committed write touching the collection.
    """

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        callback: SnapshotCallback,
        order_by: Optional[str],
        descending: bool,
    ):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.order_by = order_by
        self.descending = descending
        self.active = True

    def deliver(self) -> None:
        if not self.active:
            return
        snapshot = self.store.query(self.collection, order_by=self.order_by, descending=self.descending)
        self.callback(snapshot)

    def unsubscribe(self) -> None:
        self.active = False
        self.store._remove_subscription(self)


class DocumentStore:
    """SQLite-backed document store with named collections.

    Documents are JSON objects keyed by (collection, doc_id). Writes go through
    atomic batches; live queries are notified after each commit.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open document store at {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents(
                  collection TEXT NOT NULL,
                  doc_id TEXT NOT NULL,
                  data_json TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  PRIMARY KEY(collection, doc_id)
                );

                CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize document store schema: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]

    # Reads

    def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT doc_id, data_json FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Lookup of {collection}/{doc_id} failed: {e}") from e
        finally:
            conn.close()
        if row is None:
            return None
        return DocumentSnapshot(id=str(row["doc_id"]), data=dict(_json_loads(str(row["data_json"])) or {}))

    def query(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> QuerySnapshot:
        """Return every document in a collection, optionally ordered by one field.

        Documents missing the order field sort first (last when descending).
        Ties keep insertion order.
        """
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT doc_id, data_json FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Query of {collection} failed: {e}") from e
        finally:
            conn.close()

        docs = [
            DocumentSnapshot(id=str(row["doc_id"]), data=dict(_json_loads(str(row["data_json"])) or {}))
            for row in rows
        ]
        if order_by:
            docs.sort(
                key=lambda d: (d.data.get(order_by) is not None, str(d.data.get(order_by) or "")),
                reverse=descending,
            )
        return QuerySnapshot(collection=collection, docs=docs)

    # Writes

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def add(self, collection: str, data: dict[str, Any]) -> str:
        b = self.batch()
        doc_id = b.add(collection, data)
        b.commit()
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.batch().set(collection, doc_id, data).commit()

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            KeyError: If the document does not exist
        """
        self.batch().update(collection, doc_id, fields).commit()

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing id is a no-op."""
        self.batch().delete(collection, doc_id).commit()

    def _apply(self, ops: Iterable[WriteOp]) -> None:
        ts = _iso_now()
        conn = self._connect()
        try:
            with conn:
                for op in ops:
                    if op.op == "set":
                        conn.execute(
                            "INSERT INTO documents(collection, doc_id, data_json, updated_at) VALUES(?, ?, ?, ?) "
                            "ON CONFLICT(collection, doc_id) DO UPDATE SET "
                            "data_json=excluded.data_json, updated_at=excluded.updated_at",
                            (op.collection, op.doc_id, _json_dumps(op.data or {}), ts),
                        )
                    elif op.op == "update":
                        row = conn.execute(
                            "SELECT data_json FROM documents WHERE collection = ? AND doc_id = ?",
                            (op.collection, op.doc_id),
                        ).fetchone()
                        if row is None:
                            raise KeyError(f"Unknown document: {op.collection}/{op.doc_id}")
                        merged = dict(_json_loads(str(row["data_json"])) or {})
                        merged.update(op.data or {})
                        conn.execute(
                            "UPDATE documents SET data_json = ?, updated_at = ? WHERE collection = ? AND doc_id = ?",
                            (_json_dumps(merged), ts, op.collection, op.doc_id),
                        )
                    elif op.op == "delete":
                        conn.execute(
                            "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                            (op.collection, op.doc_id),
                        )
                    else:
                        raise ValueError(f"Unknown write op: {op.op}")
        finally:
            conn.close()

    # Live queries

    def on_snapshot(
        self,
        collection: str,
        callback: SnapshotCallback,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        """Register a live query and deliver the current snapshot immediately."""
        sub = Subscription(self, collection, callback, order_by, descending)
        with self._lock:
            self._subscriptions.append(sub)
        sub.deliver()
        return sub

    def _remove_subscription(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def _notify(self, collections: set[str]) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.collection in collections]
        for sub in targets:
            logger.debug("Delivering snapshot of %s", sub.collection)
            try:
                sub.deliver()
            except Exception:
                # The writes already landed; a failing listener must not undo that outcome.
                logger.exception("Snapshot listener on %s raised", sub.collection)
