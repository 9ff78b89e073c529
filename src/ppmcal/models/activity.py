"""Pydantic models for the activity log (previous activity)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .events import as_utc, format_timestamp, parse_timestamp

DEFAULT_ACTIVITY_SOURCE = "Project Calendar"


class ArchivedActivityEntry(BaseModel):
    """An activity log record derived from an archived calendar event.

    Stored in the ``activityLogEntries`` collection. ``source_event_id`` is a
    weak reference: the event it points to has normally been deleted.
    """

    id: str = Field(description="Document id in the activity log collection")
    title: str = Field(description="Derived title, e.g. 'Meeting Ended: X'")
    details: str = Field(default="", description="Composed text describing the original event")
    logged_at: datetime = Field(description="When the entry was archived (UTC)")
    source_event_id: str | None = Field(default=None, description="Id of the archived event")
    original_event_time: datetime | None = Field(
        default=None,
        description="Start time of the original event",
    )
    source: str | None = Field(default=None, description="Where the entry came from")

    model_config = {"frozen": True}

    @field_validator("logged_at", "original_event_time")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "details": self.details,
            "date": format_timestamp(self.logged_at),
            "sourceEventId": self.source_event_id,
            "originalEventTime": format_timestamp(self.original_event_time),
            "source": self.source,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "ArchivedActivityEntry":
        return cls(
            id=doc_id,
            title=data.get("title") or "",
            details=data.get("details") or "",
            logged_at=parse_timestamp(data.get("date")),
            source_event_id=data.get("sourceEventId"),
            original_event_time=parse_timestamp(data.get("originalEventTime")),
            source=data.get("source"),
        )
