"""Tests for calendar event operations and views."""

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import NOW, seed_event
from ppmcal.models.events import CalendarEvent, EventKind
from ppmcal.schedule import CalendarService, decode_events, events_on, upcoming_events


@pytest.fixture
def calendar(store, notifier):
    return CalendarService(store, notifier)


def test_add_event_persists_and_notifies(calendar, store, notifier):
    event = calendar.add_event(
        "Design review",
        EventKind.MEETING,
        NOW + timedelta(days=1),
        NOW + timedelta(days=1, hours=1),
        description="Slides",
        project_id="p-1",
    )

    doc = store.get("calendarEvents", event.id)
    assert doc is not None
    assert doc.data["type"] == "Meeting"
    assert doc.data["projectId"] == "p-1"
    assert calendar.get_event(event.id) == event
    assert notifier.history[-1].title == "Event Added"
    assert "Design review" in notifier.history[-1].description


def test_add_event_requires_title(calendar, store, notifier):
    with pytest.raises(ValueError):
        calendar.add_event("   ", EventKind.MEETING, NOW)

    assert len(store.query("calendarEvents")) == 0
    assert notifier.history[-1].variant == "destructive"


def test_end_before_start_is_rejected(calendar):
    with pytest.raises(ValueError):
        calendar.add_event("Backwards", EventKind.MEETING, NOW, NOW - timedelta(hours=1))


def test_birthdays_are_recurring(calendar):
    event = calendar.add_event("Ana", EventKind.BIRTHDAY, datetime(1990, 3, 14, tzinfo=timezone.utc))
    assert event.is_recurring


def test_update_event_revalidates(calendar):
    event = calendar.add_event("Sync", EventKind.MEETING, NOW)

    updated = calendar.update_event(event.id, title="Weekly sync", kind=EventKind.DEADLINE)

    assert updated.title == "Weekly sync"
    assert calendar.get_event(event.id).kind == EventKind.DEADLINE

    with pytest.raises(ValueError):
        calendar.update_event(event.id, end_time=NOW - timedelta(days=1))
    with pytest.raises(ValueError):
        calendar.update_event(event.id, colour="red")
    with pytest.raises(KeyError):
        calendar.update_event("missing", title="x")


def test_delete_event(calendar, notifier):
    event = calendar.add_event("Sync", EventKind.MEETING, NOW)

    calendar.delete_event(event.id)

    assert calendar.get_event(event.id) is None
    assert notifier.history[-1].title == "Event Deleted"
    with pytest.raises(ValueError):
        calendar.delete_event("")


def test_list_events_orders_by_start_and_skips_bad_documents(calendar, store):
    later = seed_event(store, "Later", EventKind.REMINDER, NOW + timedelta(days=3))
    sooner = seed_event(store, "Sooner", EventKind.REMINDER, NOW + timedelta(days=1))
    store.add("calendarEvents", {"title": "Broken", "type": "Meeting"})

    assert [e.id for e in calendar.list_events()] == [sooner, later]


def test_decode_events_reports_skipped(store):
    bad = store.add("calendarEvents", {"title": "?", "type": "Party", "start": NOW.isoformat()})

    events, skipped = decode_events(store.query("calendarEvents"))

    assert events == []
    assert skipped == [bad]


def _ev(event_id, kind, start, recurring=False):
    return CalendarEvent(id=event_id, title=event_id, kind=kind, start_time=start, is_recurring=recurring)


def test_events_on_matches_birthdays_by_month_and_day():
    birthday = _ev("bday", EventKind.BIRTHDAY, datetime(1990, 10, 19, tzinfo=timezone.utc), recurring=True)
    meeting = _ev("m", EventKind.MEETING, datetime(2026, 10, 19, 13, 0, tzinfo=timezone.utc))
    other = _ev("o", EventKind.MEETING, datetime(2026, 10, 20, 13, 0, tzinfo=timezone.utc))

    matched = events_on(date(2026, 10, 19), [birthday, meeting, other])

    assert [e.id for e in matched] == ["bday", "m"]
    assert matched[0].start_time.year == 2026


def test_upcoming_rolls_birthdays_forward():
    today = date(2026, 10, 19)
    passed_bday = _ev("jan", EventKind.BIRTHDAY, datetime(1990, 1, 5, tzinfo=timezone.utc), recurring=True)
    soon_bday = _ev("nov", EventKind.BIRTHDAY, datetime(1985, 11, 2, tzinfo=timezone.utc), recurring=True)
    past = _ev("past", EventKind.MEETING, datetime(2026, 10, 18, tzinfo=timezone.utc))
    todays = _ev("today", EventKind.DEADLINE, datetime(2026, 10, 19, 17, 0, tzinfo=timezone.utc))

    upcoming = upcoming_events([passed_bday, soon_bday, past, todays], today)

    assert [e.id for e in upcoming] == ["today", "nov", "jan"]
    assert upcoming[1].start_time.date() == date(2026, 11, 2)
    assert upcoming[2].start_time.date() == date(2027, 1, 5)


def test_leap_day_birthday_falls_back_to_feb_28():
    leap = _ev("leap", EventKind.BIRTHDAY, datetime(2000, 2, 29, tzinfo=timezone.utc), recurring=True)

    assert [e.id for e in events_on(date(2027, 2, 28), [leap])] == ["leap"]
