"""Pytest fixtures for ppmcal tests."""

import sqlite3
from datetime import datetime, timezone

import pytest

from ppmcal.lifecycle import EventLifecycleManager
from ppmcal.models.events import CalendarEvent, EventKind
from ppmcal.notifications import NotificationLedger, Notifier
from ppmcal.projects import ProjectDirectory
from ppmcal.store import DocumentStore

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    """Fresh document store in a temporary directory."""
    return DocumentStore(tmp_path / "data" / "ppm.sqlite")


@pytest.fixture
def notifier(tmp_path):
    """Quiet notifier that still writes its ledger."""
    return Notifier(ledger=NotificationLedger(tmp_path / "data" / "notifications.jsonl"), quiet=True)


@pytest.fixture
def projects(store):
    return ProjectDirectory(store)


@pytest.fixture
def manager(store, projects, notifier):
    """Lifecycle manager whose clock is fixed at NOW."""
    return EventLifecycleManager(store, projects, notifier, clock=lambda: NOW)


@pytest.fixture
def failing_ids(store, monkeypatch):
    """Event ids whose deletion makes a commit fail.

    Add an id to the returned set to simulate a rejected batch for it.
    """
    ids: set[str] = set()
    original = store._apply

    def _apply(ops):
        ops = list(ops)
        if any(op.op == "delete" and op.doc_id in ids for op in ops):
            raise sqlite3.OperationalError("simulated commit failure")
        original(ops)

    monkeypatch.setattr(store, "_apply", _apply)
    return ids


def seed_event(
    store: DocumentStore,
    title: str,
    kind: EventKind,
    start: datetime,
    end: datetime | None = None,
    **extra,
) -> str:
    """Insert an event document and return its id."""
    draft = CalendarEvent(id="", title=title, kind=kind, start_time=start, end_time=end, **extra)
    return store.add("calendarEvents", draft.to_document())
