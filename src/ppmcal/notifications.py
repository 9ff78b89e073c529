"""Toast-style user notifications and their append-only ledger."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional

from rich.console import Console

from .models.notification import Notification

console = Console()

NotificationKind = Literal["calendar", "activity", "project", "generic"]


class NotificationLedger:
    """Append-only notification ledger.

    Writes notifications to <data_dir>/notifications.jsonl.
    Never truncates or rewrites; only appends.
    """

    def __init__(self, ledger_path: Path):
        self.ledger_path = ledger_path

    def append(self, notification: Notification) -> None:
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ledger_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(notification.model_dump(mode="json")) + "\n")


class Notifier:
    """The notification surface: one-line success and failure messages.

    Every notification is kept in ``history``, printed to the console unless
    ``quiet`` is set, and appended to the ledger when one is configured.
    """

    def __init__(
        self,
        ledger: Optional[NotificationLedger] = None,
        out: Optional[Console] = None,
        quiet: bool = False,
    ):
        self.ledger = ledger
        self.out = out or console
        self.quiet = quiet
        self.history: list[Notification] = []

    def notify(
        self,
        title: str,
        description: str = "",
        variant: Literal["default", "destructive"] = "default",
        kind: NotificationKind = "generic",
    ) -> Notification:
        notification = Notification(
            notification_id=str(uuid.uuid4()),
            ts=datetime.now(timezone.utc),
            title=title,
            description=description,
            variant=variant,
            kind=kind,
        )
        self.history.append(notification)

        if not self.quiet:
            style = "red" if variant == "destructive" else "green"
            self.out.print(f"[{style}]{title}[/{style}] {description}".rstrip())

        if self.ledger is not None:
            self.ledger.append(notification)

        return notification

    def error(self, title: str, description: str = "", kind: NotificationKind = "generic") -> Notification:
        return self.notify(title, description, variant="destructive", kind=kind)


def read_notifications_tail(ledger_path: Path, n: int = 20) -> list[Notification]:
    """Read the last N notifications from the ledger.

    Robust parsing: skips malformed lines with a warning.
    """
    if not ledger_path.exists():
        return []

    notifications: list[Notification] = []
    malformed_count = 0

    with open(ledger_path, "r", encoding="utf-8") as f:
        lines = f.readlines()

    for line in lines[-n:] if len(lines) > n else lines:
        line = line.strip()
        if not line:
            continue

        try:
            notifications.append(Notification(**json.loads(line)))
        except (json.JSONDecodeError, ValueError) as e:
            malformed_count += 1
            console.print(f"[yellow]Warning: Skipping malformed line: {e}[/yellow]")

    if malformed_count > 0:
        console.print(f"[yellow]Skipped {malformed_count} malformed line(s)[/yellow]")

    return notifications
