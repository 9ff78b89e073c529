"""Event lifecycle: move expired calendar events into the activity log.

Every snapshot of the events collection is evaluated against the current
time. Meetings and deadlines whose end (or start, when there is no end) has
passed are archived one by one: a single write batch inserts the derived
activity entry and deletes the event, so both changes land together or not
at all. Failures are reported and left for the next snapshot to retry.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, Literal, Optional

from .models.activity import DEFAULT_ACTIVITY_SOURCE, ArchivedActivityEntry
from .models.events import ARCHIVABLE_KINDS, CalendarEvent, EventKind, as_utc
from .notifications import Notifier
from .projects import ProjectDirectory
from .schedule import decode_events
from .store import DocumentStore, QuerySnapshot, StoreError, Subscription

logger = logging.getLogger(__name__)

ArchivalStatus = Literal["archived", "failed", "skipped", "in_flight", "gone"]


class UnarchivableKindError(ValueError):
    """Raised when an event kind has no activity title."""


@dataclass(frozen=True)
class Evaluation:
    to_archive: list[CalendarEvent]
    to_keep: list[CalendarEvent]


@dataclass(frozen=True)
class ArchivalOutcome:
    event_id: str
    event_title: str
    status: ArchivalStatus
    entry_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SnapshotReport:
    now: datetime
    visible: list[CalendarEvent] = field(default_factory=list)
    outcomes: list[ArchivalOutcome] = field(default_factory=list)
    skipped_documents: list[str] = field(default_factory=list)

    def count(self, status: ArchivalStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_due_for_archival(event: CalendarEvent, now: datetime) -> bool:
    return event.kind in ARCHIVABLE_KINDS and event.archival_moment < as_utc(now)


def evaluate(events: Iterable[CalendarEvent], now: datetime) -> Evaluation:
    """Partition events into those due for archival and those to keep.

    Pure: no store access. Input order is preserved in both lists.
    """
    to_archive: list[CalendarEvent] = []
    to_keep: list[CalendarEvent] = []
    for event in events:
        if is_due_for_archival(event, now):
            to_archive.append(event)
        else:
            to_keep.append(event)
    return Evaluation(to_archive=to_archive, to_keep=to_keep)


def archive_title(event: CalendarEvent) -> str:
    match event.kind:
        case EventKind.MEETING:
            return f"Meeting Ended: {event.title}"
        case EventKind.DEADLINE:
            return f"Deadline Passed: {event.title}"
        case _:
            raise UnarchivableKindError(f"No activity title for event kind {event.kind.value!r}")


def format_time_window(start: datetime, end: Optional[datetime] = None, tz: tzinfo = timezone.utc) -> str:
    """Human-readable event time, e.g. 'Sun, Oct 18, 2026 14:00 - 15:00 UTC'."""
    local_start = as_utc(start).astimezone(tz)
    tz_name = local_start.strftime("%Z")
    text = local_start.strftime("%a, %b %d, %Y %H:%M")
    if end is not None:
        local_end = as_utc(end).astimezone(tz)
        if local_end.date() == local_start.date():
            text += local_end.strftime(" - %H:%M")
        else:
            text += local_end.strftime(" - %a, %b %d, %Y %H:%M")
    return f"{text} {tz_name}".rstrip()


def compose_details(event: CalendarEvent, project_name: Optional[str] = None, tz: tzinfo = timezone.utc) -> str:
    lines = [
        f"Event: {event.title}",
        f"Type: {event.kind.value}",
        f"When: {format_time_window(event.start_time, event.end_time, tz)}",
    ]
    if event.description:
        lines.append(f"Description: {event.description}")
    if event.project_id:
        if project_name:
            lines.append(f"Project: {project_name}")
        else:
            lines.append(f"Project ID: {event.project_id}")
    return "\n".join(lines)


class EventLifecycleManager:
    """Archives expired events whenever a snapshot of the events collection arrives.

    There is no timer: archival only runs when the live query delivers a
    snapshot. Event ids being archived are tracked in an in-flight set so an
    overlapping pass never writes a second activity entry for the same event.
    """

    def __init__(
        self,
        store: DocumentStore,
        projects: ProjectDirectory,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = _utc_now,
        events_collection: str = "calendarEvents",
        activity_collection: str = "activityLogEntries",
        source: str = DEFAULT_ACTIVITY_SOURCE,
        tz: tzinfo = timezone.utc,
    ):
        self.store = store
        self.projects = projects
        self.notifier = notifier
        self.clock = clock
        self.events_collection = events_collection
        self.activity_collection = activity_collection
        self.source = source
        self.tz = tz

        self.visible_events: list[CalendarEvent] = []
        self.last_report: Optional[SnapshotReport] = None
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()
        self._subscription: Optional[Subscription] = None

    def attach(self) -> None:
        """Start listening to the events collection (delivers one snapshot right away)."""
        if self._subscription is not None:
            return
        self._subscription = self.store.on_snapshot(
            self.events_collection, self.on_snapshot, order_by="start"
        )

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    @property
    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    def _claim(self, event_ids: Iterable[str]) -> set[str]:
        with self._lock:
            free = {i for i in event_ids if i not in self._in_flight}
            self._in_flight |= free
            return free

    def _release(self, event_id: str) -> None:
        with self._lock:
            self._in_flight.discard(event_id)

    def on_snapshot(self, snapshot: QuerySnapshot) -> SnapshotReport:
        now = as_utc(self.clock())
        events, skipped = decode_events(snapshot)
        evaluation = evaluate(events, now)

        # Hide expired events before any write so they never flicker back.
        self.visible_events = list(evaluation.to_keep)

        claimed = self._claim(e.id for e in evaluation.to_archive)
        outcomes = []
        try:
            for event in evaluation.to_archive:
                if event.id not in claimed:
                    logger.debug("Event %s is already being archived", event.id)
                    outcomes.append(ArchivalOutcome(event.id, event.title, "in_flight"))
                    continue
                try:
                    outcomes.append(self._archive_claimed(event, now))
                except Exception as e:
                    logger.exception("Unexpected error archiving event %s", event.id)
                    self._report_failure(event)
                    outcomes.append(ArchivalOutcome(event.id, event.title, "failed", error=str(e)))
                finally:
                    self._release(event.id)
                    claimed.discard(event.id)
        finally:
            for event_id in claimed:
                self._release(event_id)

        report = SnapshotReport(
            now=now,
            visible=list(evaluation.to_keep),
            outcomes=outcomes,
            skipped_documents=skipped,
        )
        self.last_report = report
        return report

    def archive_one(self, event: CalendarEvent, now: Optional[datetime] = None) -> ArchivalOutcome:
        """Archive a single event, unless another pass is already archiving it."""
        if not self._claim([event.id]):
            return ArchivalOutcome(event.id, event.title, "in_flight")
        try:
            return self._archive_claimed(event, as_utc(now or self.clock()))
        finally:
            self._release(event.id)

    def _resolve_project_name(self, project_id: str) -> Optional[str]:
        try:
            return self.projects.lookup_name(project_id)
        except (StoreError, ValueError) as e:
            logger.warning("Project lookup for %s failed: %s", project_id, e)
            return None

    def build_entry(self, event: CalendarEvent, now: datetime, project_name: Optional[str] = None) -> ArchivedActivityEntry:
        return ArchivedActivityEntry(
            id="",
            title=archive_title(event),
            details=compose_details(event, project_name, self.tz),
            logged_at=now,
            source_event_id=event.id,
            original_event_time=event.start_time,
            source=self.source,
        )

    def _report_failure(self, event: CalendarEvent) -> None:
        self.notifier.error(
            "Archival Failed",
            f'Could not move "{event.title}" to previous activity. It stays on the calendar.',
            kind="calendar",
        )

    def _archive_claimed(self, event: CalendarEvent, now: datetime) -> ArchivalOutcome:
        try:
            title = archive_title(event)
        except UnarchivableKindError as e:
            logger.warning("Not archiving event %s: %s", event.id, e)
            return ArchivalOutcome(event.id, event.title, "skipped", error=str(e))

        project_name = self._resolve_project_name(event.project_id) if event.project_id else None
        entry = self.build_entry(event, now, project_name)

        try:
            if self.store.get(self.events_collection, event.id) is None:
                logger.info("Event %s is no longer in the store; nothing to archive", event.id)
                return ArchivalOutcome(event.id, event.title, "gone")

            batch = self.store.batch()
            entry_id = batch.add(self.activity_collection, entry.to_document())
            batch.delete(self.events_collection, event.id)
            batch.commit()
        except StoreError as e:
            logger.error("Archiving event %s (%s) failed: %s", event.id, event.title, e)
            self._report_failure(event)
            return ArchivalOutcome(event.id, event.title, "failed", error=str(e))

        logger.info("Archived event %s as activity entry %s", event.id, entry_id)
        self.notifier.notify("Event Archived", f'"{title}" moved to previous activity.', kind="activity")
        return ArchivalOutcome(event.id, event.title, "archived", entry_id=entry_id)
