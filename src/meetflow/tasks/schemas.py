"""Pydantic v2 schemas for task records.

TaskRecord is the persisted, independently addressable task. The
pipeline only ever creates tasks (via TaskMaterializer); status and
detail updates belong to the task CRUD surface.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Workflow status of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Task urgency, shared with extracted action items."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskCreate(BaseModel):
    """Fields required to insert a task record."""

    name: str = Field(min_length=1)
    owner: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    deadline: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    source_meeting: str | None = None
    team: str | None = None
    description: str = ""


class TaskRecord(TaskCreate):
    """Persisted task with identity and creation time."""

    id: str
    created_at: datetime
