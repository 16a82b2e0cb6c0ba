"""Task persistence model.

source_meeting is a weak back-reference (no foreign key): deleting a
meeting leaves its generated tasks in place.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from src.meetflow.core.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class TaskModel(Base):
    """A tracked task, optionally generated from a meeting action item."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_source_meeting", "source_meeting"),
        Index("ix_tasks_team", "team"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    owner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default="pending",
        server_default=text("'pending'"),
    )
    deadline: Mapped[str | None] = mapped_column(String(255), nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20),
        default="medium",
        server_default=text("'medium'"),
    )
    source_meeting: Mapped[str | None] = mapped_column(String(64), nullable=True)
    team: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str] = mapped_column(Text, default="", server_default=text("''"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
