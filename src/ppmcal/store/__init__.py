"""Local document store with atomic batches and live queries."""

from .batch import WriteBatch
from .db import DocumentSnapshot, DocumentStore, QuerySnapshot, Subscription
from .errors import BatchStateError, CommitError, StoreError

__all__ = [
    "BatchStateError",
    "CommitError",
    "DocumentSnapshot",
    "DocumentStore",
    "QuerySnapshot",
    "StoreError",
    "Subscription",
    "WriteBatch",
]
