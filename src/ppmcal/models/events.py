"""Pydantic models for project calendar events."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class EventKind(str, Enum):
    """Calendar event kinds."""

    DEADLINE = "Deadline"
    MEETING = "Meeting"
    MILESTONE = "Milestone"
    REMINDER = "Reminder"
    BIRTHDAY = "Birthday"


# Milestone, Reminder and Birthday are informational and stay until a user deletes them.
ARCHIVABLE_KINDS = frozenset({EventKind.MEETING, EventKind.DEADLINE})


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp (ISO string or datetime) into aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))


def format_timestamp(value: datetime | None) -> str | None:
    """Serialize a datetime as an ISO-8601 UTC string for storage."""
    if value is None:
        return None
    return as_utc(value).isoformat()


class CalendarEvent(BaseModel):
    """A scheduled item on the project calendar.

    Stored in the ``calendarEvents`` collection. The document id is owned by
    the store; ``kind`` is persisted under the ``type`` key.
    """

    id: str = Field(description="Document id in the events collection")
    title: str = Field(description="Event title")
    kind: EventKind = Field(description="Event kind")
    start_time: datetime = Field(description="Start of the event (UTC)")
    end_time: datetime | None = Field(
        default=None,
        description="End of the event; absent for point-in-time kinds",
    )
    description: str = Field(default="", description="Free-text description")
    project_id: str | None = Field(default=None, description="Linked project id")
    is_recurring: bool = Field(default=False, description="Repeats yearly (birthdays)")

    model_config = {"frozen": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_window(self) -> "CalendarEvent":
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self

    @property
    def archival_moment(self) -> datetime:
        """The boundary after which the event counts as over."""
        return self.end_time if self.end_time is not None else self.start_time

    def to_document(self) -> dict[str, Any]:
        """Document payload (without the id) for the events collection."""
        return {
            "title": self.title,
            "type": self.kind.value,
            "start": format_timestamp(self.start_time),
            "end": format_timestamp(self.end_time),
            "description": self.description,
            "projectId": self.project_id,
            "isRecurring": self.is_recurring,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "CalendarEvent":
        """Build an event from a stored document.

        Raises:
            ValueError: If the document is missing fields or has an unknown kind
        """
        return cls(
            id=doc_id,
            title=data.get("title") or "",
            kind=data.get("type"),
            start_time=parse_timestamp(data.get("start")),
            end_time=parse_timestamp(data.get("end")),
            description=data.get("description") or "",
            project_id=data.get("projectId") or None,
            is_recurring=bool(data.get("isRecurring", False)),
        )
