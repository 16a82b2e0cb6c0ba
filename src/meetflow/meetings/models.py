"""Meeting persistence model.

One row per uploaded recording. Pipeline outputs (transcript, minutes,
summary, linked task ids, failure marker) are nullable columns written
independently by the PipelineOrchestrator via partial updates.

No foreign key to tasks: the meeting/task relation is non-owning and
lives in tasks.source_meeting plus the task_ids JSON list here.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from src.meetflow.core.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class MeetingModel(Base):
    """Uploaded meeting recording and its processing outputs."""

    __tablename__ = "meetings"
    __table_args__ = (
        Index("ix_meetings_project_date", "project_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recording_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    participants_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'")
    )
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    minutes: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    task_ids_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'")
    )
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    failed_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
