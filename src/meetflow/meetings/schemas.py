"""Pydantic v2 schemas for the meeting processing domain.

Defines the data contracts shared by the pipeline stages: the persisted
MeetingRecord (with its derived processing status), the transient
TranscriptionResult, and the two shapes of an action item:

- ExtractedActionItem: the provider-facing schema. Absent assignee or
  deadline is the literal sentinel NOT_SPECIFIED, because that is what
  the extraction prompt asks the model to emit.
- ActionItem: the internal shape. The sentinel is converted to None on
  construction so it never reaches a persisted record.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator

from src.meetflow.tasks.schemas import TaskPriority

NOT_SPECIFIED = "Not specified"

_SENTINELS = {NOT_SPECIFIED.lower(), "unspecified"}


def unspecified_to_none(value: object) -> object:
    """Map the "Not specified" sentinel (and blanks) to None."""
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or stripped.lower() in _SENTINELS:
            return None
        return stripped
    return value


def _coerce_priority(value: object) -> object:
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized or None
    return value


# ── Enums ────────────────────────────────────────────────────────────────────


class ProcessingStatus(str, Enum):
    """Derived status of a meeting's background processing."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceKind(str, Enum):
    """Which text an action-item extraction runs over."""

    TRANSCRIPT = "transcript"
    MINUTES = "minutes"


# ── Transcription ────────────────────────────────────────────────────────────


class TranscriptSegment(BaseModel):
    """A time-aligned span of the transcript."""

    id: int = 0
    start: float
    end: float
    text: str


class TranscriptWord(BaseModel):
    """A single time-aligned word."""

    word: str
    start: float
    end: float


class TranscriptionResult(BaseModel):
    """Speech-to-text output for one recording. Never persisted as-is."""

    text: str
    duration: float | None = None
    language: str | None = None
    segments: list[TranscriptSegment] = Field(default_factory=list)
    words: list[TranscriptWord] = Field(default_factory=list)


# ── Action Items ─────────────────────────────────────────────────────────────


class ExtractedActionItem(BaseModel):
    """Action item as emitted by the extraction model."""

    task: str = Field(min_length=1, description="Description of the task")
    assignee: str = Field(
        description=f"Person responsible if mentioned, otherwise '{NOT_SPECIFIED}'"
    )
    deadline: str = Field(
        description=f"Deadline if mentioned, otherwise '{NOT_SPECIFIED}'"
    )
    priority: TaskPriority | None = Field(
        None, description="low, medium, high or urgent, based on context"
    )
    category: str = Field(
        "",
        description="Category, e.g. Development, Research, Meeting, Documentation",
    )

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: object) -> object:
        return _coerce_priority(value)

    def to_action_item(self) -> ActionItem:
        return ActionItem(
            description=self.task,
            assignee=self.assignee,
            deadline=self.deadline,
            priority=self.priority,
            category=self.category,
        )


class ActionItemList(BaseModel):
    """Envelope the extraction model must fill; empty list is valid."""

    action_items: list[ExtractedActionItem] = Field(default_factory=list)


class ActionItem(BaseModel):
    """Candidate task extracted from meeting content, pre-materialization."""

    description: str = Field(min_length=1)
    assignee: str | None = None
    deadline: str | None = None
    priority: TaskPriority | None = None
    category: str = ""

    @field_validator("assignee", "deadline", mode="before")
    @classmethod
    def _drop_sentinel(cls, value: object) -> object:
        return unspecified_to_none(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: object) -> object:
        return _coerce_priority(value)

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("description must not be blank")
        return stripped


# ── Meeting Record ───────────────────────────────────────────────────────────


class MeetingCreate(BaseModel):
    """Placeholder record written by the upload handler."""

    project_id: str
    title: str = Field(min_length=1, max_length=255)
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    recording_url: str | None = None
    participants: list[str] = Field(default_factory=list)


class MeetingRecord(BaseModel):
    """Meeting with its pipeline outputs.

    Each stage owns its own field(s); the failure marker lives in
    processing_error so that earlier outputs survive a failed stage.
    """

    id: str
    project_id: str
    title: str
    date: datetime
    recording_url: str | None = None
    participants: list[str] = Field(default_factory=list)
    transcript: str | None = None
    minutes: str | None = None
    summary: str | None = None
    task_ids: list[str] = Field(default_factory=list)
    processing_error: str | None = None
    failed_stage: str | None = None
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def processing_status(self) -> ProcessingStatus:
        if self.processing_error:
            return ProcessingStatus.FAILED
        if self.processed_at is not None:
            return ProcessingStatus.COMPLETED
        if any(v is not None for v in (self.transcript, self.minutes, self.summary)):
            return ProcessingStatus.PROCESSING
        return ProcessingStatus.PENDING


# Fields the pipeline may write through MeetingRepository.update_meeting
PIPELINE_FIELDS = frozenset(
    {
        "transcript",
        "minutes",
        "summary",
        "task_ids",
        "processing_error",
        "failed_stage",
        "processed_at",
    }
)
