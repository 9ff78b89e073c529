"""Tests for notifications and the notification ledger."""

import json

from rich.console import Console

from ppmcal.notifications import NotificationLedger, Notifier, read_notifications_tail


def test_notify_appends_to_ledger(tmp_path):
    ledger_path = tmp_path / "data" / "notifications.jsonl"
    notifier = Notifier(ledger=NotificationLedger(ledger_path), quiet=True)

    first = notifier.notify("Event Added", '"Sync" has been added to the calendar.', kind="calendar")
    second = notifier.error("Archival Failed", 'Could not move "Sync".', kind="calendar")

    lines = ledger_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["notification_id"] == first.notification_id
    assert json.loads(lines[1])["variant"] == "destructive"
    assert notifier.history == [first, second]


def test_notifier_without_ledger_only_keeps_history(tmp_path):
    out = Console(record=True, width=120)
    notifier = Notifier(out=out)

    notifier.notify("Event Deleted", "The event has been successfully deleted.")

    assert len(notifier.history) == 1
    assert "Event Deleted" in out.export_text()
    assert list(tmp_path.iterdir()) == []


def test_read_tail_skips_malformed_lines(tmp_path):
    ledger_path = tmp_path / "notifications.jsonl"
    notifier = Notifier(ledger=NotificationLedger(ledger_path), quiet=True)
    for i in range(5):
        notifier.notify(f"n{i}")
    with open(ledger_path, "a", encoding="utf-8") as f:
        f.write("{not json\n")
        f.write("\n")

    tail = read_notifications_tail(ledger_path, n=4)

    assert [n.title for n in tail] == ["n3", "n4"]


def test_read_tail_missing_file(tmp_path):
    assert read_notifications_tail(tmp_path / "nope.jsonl") == []
