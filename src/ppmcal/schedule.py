"""Project calendar: adding, editing, deleting and viewing events."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, Optional

from .models.events import CalendarEvent, EventKind, as_utc
from .notifications import Notifier
from .store import DocumentStore, QuerySnapshot, StoreError

logger = logging.getLogger(__name__)

_FIELD_KEYS = {
    "title": "title",
    "kind": "type",
    "start_time": "start",
    "end_time": "end",
    "description": "description",
    "project_id": "projectId",
    "is_recurring": "isRecurring",
}


def decode_events(snapshot: QuerySnapshot) -> tuple[list[CalendarEvent], list[str]]:
    """Turn a snapshot into events, skipping documents that do not parse.

    Returns:
        (events, ids of skipped documents)
    """
    events: list[CalendarEvent] = []
    skipped: list[str] = []
    for doc in snapshot:
        try:
            events.append(CalendarEvent.from_document(doc.id, doc.data))
        except ValueError as e:
            logger.warning("Skipping calendar document %s: %s", doc.id, e)
            skipped.append(doc.id)
    return events, skipped


def _anniversary(event: CalendarEvent, year: int, tz: tzinfo) -> date:
    anchor = event.start_time.astimezone(tz).date()
    try:
        return anchor.replace(year=year)
    except ValueError:
        # Feb 29 anchors fall on Feb 28 in common years.
        return anchor.replace(year=year, day=28)


def events_on(day: date, events: Iterable[CalendarEvent], tz: tzinfo = timezone.utc) -> list[CalendarEvent]:
    """Events falling on a calendar day.

    Recurring birthdays match on month and day and are returned with that
    day's date.
    """
    matched = []
    for event in events:
        if event.kind == EventKind.BIRTHDAY and event.is_recurring:
            if _anniversary(event, day.year, tz) == day:
                matched.append(_shift_to(event, day, tz))
        elif event.start_time.astimezone(tz).date() == day:
            matched.append(event)
    return matched


def upcoming_events(events: Iterable[CalendarEvent], today: date, tz: tzinfo = timezone.utc) -> list[CalendarEvent]:
    """Events on or after today, with each recurring birthday at its next occurrence."""
    upcoming = []
    for event in events:
        if event.kind == EventKind.BIRTHDAY and event.is_recurring:
            next_day = _anniversary(event, today.year, tz)
            if next_day < today:
                next_day = _anniversary(event, today.year + 1, tz)
            upcoming.append(_shift_to(event, next_day, tz))
        elif not event.is_recurring and event.start_time.astimezone(tz).date() >= today:
            upcoming.append(event)
    return sorted(upcoming, key=lambda e: e.start_time)


def _shift_to(event: CalendarEvent, day: date, tz: tzinfo) -> CalendarEvent:
    local = event.start_time.astimezone(tz)
    shifted = local.replace(year=day.year, month=day.month, day=day.day)
    return event.model_copy(update={"start_time": as_utc(shifted), "end_time": None})


class CalendarService:
    """User-driven calendar operations with toast feedback."""

    def __init__(self, store: DocumentStore, notifier: Notifier, collection: str = "calendarEvents"):
        self.store = store
        self.notifier = notifier
        self.collection = collection

    def add_event(
        self,
        title: str,
        kind: EventKind,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        description: str = "",
        project_id: Optional[str] = None,
    ) -> CalendarEvent:
        """Create an event. Birthdays are stored as recurring.

        Raises:
            ValueError: If the title is empty or the time window is inverted
            StoreError: If the store rejects the write
        """
        if not title or not title.strip():
            self.notifier.error("Missing Information", "Please provide a title and date for the event.", kind="calendar")
            raise ValueError("Event title is required")

        draft = CalendarEvent(
            id="",
            title=title.strip(),
            kind=kind,
            start_time=start_time,
            end_time=end_time,
            description=description,
            project_id=project_id,
            is_recurring=kind == EventKind.BIRTHDAY,
        )
        try:
            doc_id = self.store.add(self.collection, draft.to_document())
        except StoreError:
            self.notifier.error("Error", "Could not add the event. Please try again.", kind="calendar")
            raise
        self.notifier.notify("Event Added", f'"{draft.title}" has been added to the calendar.', kind="calendar")
        return draft.model_copy(update={"id": doc_id})

    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        doc = self.store.get(self.collection, event_id)
        if doc is None:
            return None
        return CalendarEvent.from_document(doc.id, doc.data)

    def update_event(self, event_id: str, **fields: Any) -> CalendarEvent:
        """Edit an existing event.

        Raises:
            KeyError: If the event does not exist
            ValueError: If a field name is unknown or the result is invalid
        """
        current = self.get_event(event_id)
        if current is None:
            raise KeyError(f"Unknown event: {event_id}")
        unknown = set(fields) - set(_FIELD_KEYS)
        if unknown:
            raise ValueError(f"Unknown event field(s): {', '.join(sorted(unknown))}")

        # Re-validate through the model so invariants still hold after the edit.
        updated = CalendarEvent(**{**current.model_dump(), **fields})
        doc = updated.to_document()
        self.store.update(self.collection, event_id, {_FIELD_KEYS[k]: doc[_FIELD_KEYS[k]] for k in fields})
        self.notifier.notify("Event Updated", f'"{updated.title}" has been updated.', kind="calendar")
        return updated

    def delete_event(self, event_id: str) -> None:
        if not event_id or not event_id.strip():
            self.notifier.error("Deletion Error", "Invalid event ID.", kind="calendar")
            raise ValueError("Invalid event ID")
        try:
            self.store.delete(self.collection, event_id)
        except StoreError:
            self.notifier.error("Error Deleting Event", "Could not delete the event. Please try again.", kind="calendar")
            raise
        self.notifier.notify("Event Deleted", "The event has been successfully deleted.", kind="calendar")

    def list_events(self) -> list[CalendarEvent]:
        events, _ = decode_events(self.store.query(self.collection, order_by="start"))
        return events
