"""Pydantic models for user-facing notifications."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """A one-line, human-readable toast.

    Appended as JSONL to <data_dir>/notifications.jsonl when a ledger is
    configured. Never mutated once written.
    """

    notification_id: str = Field(description="Unique notification identifier (uuid4)")
    ts: datetime = Field(description="When the notification was raised (UTC)")
    title: str = Field(description="Short headline")
    description: str = Field(default="", description="One-line message")
    variant: Literal["default", "destructive"] = Field(default="default")
    kind: Literal["calendar", "activity", "project", "generic"] = Field(default="generic")

    model_config = {"frozen": True}
