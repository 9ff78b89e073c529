"""Previous activity: reading and sorting the activity log."""

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Literal

from .models.activity import ArchivedActivityEntry
from .store import DocumentStore

logger = logging.getLogger(__name__)

SortKey = Literal["title", "date", "original_event_time", "source"]
SORT_KEYS: tuple[str, ...] = ("title", "date", "original_event_time", "source")


def _sort_value(entry: ArchivedActivityEntry, key: SortKey):
    if key == "date":
        return entry.logged_at
    if key == "original_event_time":
        return entry.original_event_time
    if key == "title":
        return entry.title or None
    return entry.source or None


def sort_entries(
    entries: list[ArchivedActivityEntry],
    key: SortKey = "date",
    descending: bool = True,
) -> list[ArchivedActivityEntry]:
    """Sort entries by one column.

    Entries without a value for the column come first when ascending and
    last when descending.
    """
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}")
    present = [e for e in entries if _sort_value(e, key) is not None]
    missing = [e for e in entries if _sort_value(e, key) is None]
    if key in ("title", "source"):
        present.sort(key=lambda e: str(_sort_value(e, key)).casefold(), reverse=descending)
    else:
        present.sort(key=lambda e: _sort_value(e, key), reverse=descending)
    return present + missing if descending else missing + present


class ActivityLog:
    """Read side of the activity log collection."""

    def __init__(self, store: DocumentStore, collection: str = "activityLogEntries", tz: tzinfo = timezone.utc):
        self.store = store
        self.collection = collection
        self.tz = tz

    def list_entries(self) -> list[ArchivedActivityEntry]:
        """All entries, newest first."""
        entries = []
        for doc in self.store.query(self.collection, order_by="date", descending=True):
            try:
                entries.append(ArchivedActivityEntry.from_document(doc.id, doc.data))
            except ValueError as e:
                logger.warning("Skipping activity document %s: %s", doc.id, e)
        return entries

    def _local_day(self, ts: datetime) -> date:
        return ts.astimezone(self.tz).date()

    def entries_on(self, day: date, sort_key: SortKey = "date", descending: bool = True) -> list[ArchivedActivityEntry]:
        """Entries logged on a calendar day, sorted by one column."""
        logged = [e for e in self.list_entries() if self._local_day(e.logged_at) == day]
        return sort_entries(logged, sort_key, descending)

    def days_with_activity(self) -> list[date]:
        return sorted({self._local_day(e.logged_at) for e in self.list_entries()})

    def entries_for_event(self, event_id: str) -> list[ArchivedActivityEntry]:
        return [e for e in self.list_entries() if e.source_event_id == event_id]
