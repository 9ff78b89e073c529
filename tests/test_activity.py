"""Tests for the previous-activity view."""

from datetime import date, datetime, timezone

import pytest

from ppmcal.activity import ActivityLog, sort_entries
from ppmcal.models.activity import ArchivedActivityEntry


def _entry(entry_id, title, logged_at, original=None, source=None):
    return ArchivedActivityEntry(
        id=entry_id,
        title=title,
        details="",
        logged_at=logged_at,
        original_event_time=original,
        source=source,
    )


@pytest.fixture
def log(store):
    entries = [
        _entry("a", "Meeting Ended: Alpha", datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc),
               datetime(2026, 10, 18, 14, 0, tzinfo=timezone.utc), "Project Calendar"),
        _entry("b", "Deadline Passed: beta", datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc),
               None, None),
        _entry("c", "Meeting Ended: Gamma", datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
               datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc), "Import"),
        _entry("d", "Deadline Passed: Delta", datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc),
               datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc), "Project Calendar"),
    ]
    for entry in entries:
        store.set("activityLogEntries", entry.id, entry.to_document())
    return ActivityLog(store)


def test_list_entries_newest_first(log):
    assert [e.id for e in log.list_entries()] == ["b", "c", "a", "d"]


def test_entries_on_day_default_sort(log):
    assert [e.id for e in log.entries_on(date(2026, 10, 19))] == ["b", "c", "a"]


def test_sort_by_title_is_case_insensitive(log):
    ids = [e.id for e in log.entries_on(date(2026, 10, 19), sort_key="title", descending=False)]
    assert ids == ["b", "a", "c"]


def test_missing_values_first_ascending_last_descending(log):
    day = date(2026, 10, 19)

    asc = [e.id for e in log.entries_on(day, sort_key="original_event_time", descending=False)]
    desc = [e.id for e in log.entries_on(day, sort_key="original_event_time", descending=True)]

    assert asc == ["b", "c", "a"]
    assert desc == ["a", "c", "b"]

    assert [e.id for e in log.entries_on(day, sort_key="source", descending=False)] == ["b", "c", "a"]


def test_days_with_activity(log):
    assert log.days_with_activity() == [date(2026, 10, 17), date(2026, 10, 19)]


def test_unknown_sort_key_rejected():
    with pytest.raises(ValueError):
        sort_entries([], key="colour")


def test_malformed_entries_are_skipped(store, log):
    store.set("activityLogEntries", "bad", {"title": "no date"})

    assert "bad" not in [e.id for e in log.list_entries()]
