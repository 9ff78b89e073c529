"""End-to-end tests for the typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from ppmcal.cli import app
from ppmcal.notifications import read_notifications_tail
from ppmcal.store import DocumentStore

runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    (tmp_path / ".git").mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PPMCAL_DATA_DIR", raising=False)
    monkeypatch.delenv("PPMCAL_TIMEZONE", raising=False)
    path = tmp_path / "ppm_data"
    result = runner.invoke(app, ["init", "--data-dir", str(path)])
    assert result.exit_code == 0, result.output
    return path


def _invoke(data_dir, *args):
    return runner.invoke(app, [*args, "--data-dir", str(data_dir)])


def test_init_is_idempotent(data_dir):
    assert (data_dir / "ppm.sqlite").exists()
    assert (data_dir / "notifications.jsonl").exists()
    assert (data_dir / "config.toml").exists()

    again = _invoke(data_dir, "init")
    assert again.exit_code == 0
    assert "already initialized" in again.output


def test_commands_require_init(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["event", "list", "--data-dir", str(tmp_path / "nowhere")])

    assert result.exit_code == 1
    assert "not initialized" in result.output


def test_archive_moves_expired_events(data_dir):
    project = _invoke(data_dir, "project", "add", "--name", "Apollo")
    assert project.exit_code == 0, project.output
    project_id = project.output.strip().splitlines()[-1].split()[-1]

    past = _invoke(
        data_dir, "event", "add",
        "--title", "Budget Sync", "--kind", "Meeting",
        "--start", "2026-01-05T14:00", "--end", "2026-01-05T15:00",
        "--project", project_id,
    )
    future = _invoke(data_dir, "event", "add", "--title", "Kickoff", "--kind", "Meeting", "--start", "2099-01-01T10:00")
    milestone = _invoke(data_dir, "event", "add", "--title", "Beta", "--kind", "Milestone", "--start", "2026-01-01")
    assert past.exit_code == 0, past.output
    assert future.exit_code == 0, future.output
    assert milestone.exit_code == 0, milestone.output

    result = _invoke(data_dir, "archive")
    assert result.exit_code == 0, result.output
    assert "Archived: 1" in result.output

    store = DocumentStore(data_dir / "ppm.sqlite")
    titles = sorted(d.data["title"] for d in store.query("calendarEvents"))
    assert titles == ["Beta", "Kickoff"]
    entries = store.query("activityLogEntries").docs
    assert len(entries) == 1
    assert entries[0].data["title"] == "Meeting Ended: Budget Sync"
    assert "Project: Apollo" in entries[0].data["details"]

    traces = list((data_dir / "traces" / "archival").rglob("archival_*.json"))
    assert len(traces) == 1
    trace = json.loads(traces[0].read_text(encoding="utf-8"))
    assert trace["counts"]["archived"] == 1
    assert trace["counts"]["visible"] == 2

    listed = _invoke(data_dir, "activity", "list", "--all")
    assert listed.exit_code == 0
    assert "1 Activity Entry" in listed.output


def test_event_add_rejects_bad_time(data_dir):
    result = _invoke(data_dir, "event", "add", "--title", "X", "--start", "tomorrow")

    assert result.exit_code == 1
    assert "ISO format" in result.output


def test_event_delete_and_notifications_tail(data_dir):
    added = _invoke(data_dir, "event", "add", "--title", "Temp", "--start", "2099-02-01T09:00")
    event_id = added.output.strip().splitlines()[-1].split()[-1]

    deleted = _invoke(data_dir, "event", "delete", event_id)
    assert deleted.exit_code == 0, deleted.output

    store = DocumentStore(data_dir / "ppm.sqlite")
    assert store.get("calendarEvents", event_id) is None

    tail = _invoke(data_dir, "notifications", "tail")
    assert tail.exit_code == 0
    assert "Notification(s)" in tail.output
    titles = [n.title for n in read_notifications_tail(data_dir / "notifications.jsonl")]
    assert titles == ["Event Added", "Event Deleted"]


def test_activity_list_rejects_unknown_sort(data_dir):
    result = _invoke(data_dir, "activity", "list", "--sort", "colour")

    assert result.exit_code == 1
