"""Pydantic models for the project directory."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .events import format_timestamp, parse_timestamp


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""

    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class Project(BaseModel):
    """A project in the portfolio (``projectsPPM`` collection)."""

    id: str = Field(description="Document id in the projects collection")
    name: str = Field(description="Display name")
    description: str = Field(default="")
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING)
    start_date: datetime | None = Field(default=None)
    end_date: datetime | None = Field(default=None)
    manager_name: str = Field(default="N/A")

    model_config = {"frozen": True}

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "startDate": format_timestamp(self.start_date),
            "endDate": format_timestamp(self.end_date),
            "managerName": self.manager_name,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Project":
        # Unknown statuses fall back to Planning, like the dashboard did.
        status = data.get("status")
        if status not in {s.value for s in ProjectStatus}:
            status = ProjectStatus.PLANNING
        name = data.get("name")
        return cls(
            id=doc_id,
            name=name if isinstance(name, str) and name else "Untitled Project",
            description=data.get("description") or "",
            status=status,
            start_date=parse_timestamp(data.get("startDate")),
            end_date=parse_timestamp(data.get("endDate")),
            manager_name=data.get("managerName") or "N/A",
        )
