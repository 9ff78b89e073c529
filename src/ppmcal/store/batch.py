"""Atomic multi-document write batches."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Optional

from .errors import BatchStateError, CommitError

if TYPE_CHECKING:
    from .db import DocumentStore


@dataclass(frozen=True)
class WriteOp:
    op: Literal["set", "update", "delete"]
    collection: str
    doc_id: str
    data: Optional[dict[str, Any]] = None


class WriteBatch:
    """Collects writes and applies them in one transaction.

    Either every operation lands or none does. A batch commits at most once.
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    @property
    def ops(self) -> tuple[WriteOp, ...]:
        return tuple(self._ops)

    def _check_open(self) -> None:
        if self._committed:
            raise BatchStateError("Write batch has already been committed")

    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Queue an insert under a newly generated id and return that id."""
        doc_id = self._store.new_id()
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        self._check_open()
        self._ops.append(WriteOp("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> "WriteBatch":
        self._check_open()
        self._ops.append(WriteOp("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._check_open()
        self._ops.append(WriteOp("delete", collection, doc_id))
        return self

    def commit(self) -> None:
        """Apply all queued writes atomically, then notify live queries.

        Raises:
            CommitError: If the underlying database rejects the transaction
            KeyError: If an update targets a missing document
            BatchStateError: If the batch was already committed
        """
        self._check_open()
        self._committed = True
        if not self._ops:
            return
        try:
            self._store._apply(self._ops)
        except sqlite3.Error as e:
            raise CommitError(f"Batch commit failed: {e}") from e
        self._store._notify({op.collection for op in self._ops})
