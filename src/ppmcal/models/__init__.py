"""Pydantic models for ppmcal."""

from .activity import DEFAULT_ACTIVITY_SOURCE, ArchivedActivityEntry
from .events import ARCHIVABLE_KINDS, CalendarEvent, EventKind
from .notification import Notification
from .project import Project, ProjectStatus

__all__ = [
    # Calendar
    "EventKind",
    "ARCHIVABLE_KINDS",
    "CalendarEvent",
    # Activity log
    "ArchivedActivityEntry",
    "DEFAULT_ACTIVITY_SOURCE",
    # Projects
    "Project",
    "ProjectStatus",
    # Notifications
    "Notification",
]
