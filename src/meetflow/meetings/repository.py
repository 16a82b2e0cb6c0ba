"""Meeting repository -- async CRUD for meeting records.

Uses the session_factory callable pattern: the repository receives an
async generator function yielding AsyncSession instances, so tests and
alternative engines can be swapped in without touching callers.

update_meeting issues a column-level UPDATE containing only the fields
passed in. Concurrent writers therefore never clobber each other's
columns, which is what lets a failed stage annotate the record without
erasing the transcript or minutes written by earlier stages.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.meetflow.meetings.models import MeetingModel
from src.meetflow.meetings.schemas import (
    PIPELINE_FIELDS,
    MeetingCreate,
    MeetingRecord,
)

logger = structlog.get_logger(__name__)

# Schema field name -> model column name, where they differ
_COLUMN_NAMES = {
    "task_ids": "task_ids_data",
    "participants": "participants_data",
}


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_meeting(model: MeetingModel) -> MeetingRecord:
    """Convert MeetingModel to MeetingRecord schema."""
    return MeetingRecord(
        id=model.id,
        project_id=model.project_id,
        title=model.title,
        date=model.date,
        recording_url=model.recording_url,
        participants=list(model.participants_data or []),
        transcript=model.transcript,
        minutes=model.minutes,
        summary=model.summary,
        task_ids=list(model.task_ids_data or []),
        processing_error=model.processing_error,
        failed_stage=model.failed_stage,
        processed_at=model.processed_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class MeetingRepository:
    """Async CRUD operations for meeting records.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def create_meeting(self, data: MeetingCreate) -> MeetingRecord:
        """Persist the placeholder record for a freshly uploaded recording.

        Args:
            data: MeetingCreate with project, title, date and locator.

        Returns:
            MeetingRecord with all persisted fields (outputs all empty).
        """
        async for session in self._session_factory():
            model = MeetingModel(
                project_id=data.project_id,
                title=data.title,
                date=data.date,
                recording_url=data.recording_url,
                participants_data=list(data.participants),
                task_ids_data=[],
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "meeting.created",
                meeting_id=model.id,
                project_id=model.project_id,
            )
            return _model_to_meeting(model)

    async def get_meeting(self, meeting_id: str) -> MeetingRecord | None:
        """Get a meeting by ID.

        Returns:
            MeetingRecord if found, None otherwise.
        """
        async for session in self._session_factory():
            stmt = select(MeetingModel).where(MeetingModel.id == meeting_id)
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_meeting(model)

    async def list_meetings(self, project_id: str) -> list[MeetingRecord]:
        """List a project's meetings, newest first."""
        async for session in self._session_factory():
            stmt = (
                select(MeetingModel)
                .where(MeetingModel.project_id == project_id)
                .order_by(MeetingModel.date.desc())
            )
            result = await session.execute(stmt)
            return [_model_to_meeting(m) for m in result.scalars().all()]

    async def update_meeting(self, meeting_id: str, **fields: Any) -> MeetingRecord:
        """Write only the given fields of a meeting.

        Args:
            meeting_id: Meeting ID.
            **fields: Subset of transcript, minutes, summary, task_ids,
                processing_error, failed_stage, processed_at.

        Returns:
            The meeting as re-read after the update.

        Raises:
            ValueError: If a field is not updatable or the meeting is not found.
        """
        unknown = set(fields) - PIPELINE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        values = {_COLUMN_NAMES.get(name, name): value for name, value in fields.items()}
        values["updated_at"] = datetime.now(timezone.utc)

        async for session in self._session_factory():
            stmt = (
                update(MeetingModel)
                .where(MeetingModel.id == meeting_id)
                .values(**values)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise ValueError(f"Meeting not found: id={meeting_id}")
            await session.commit()

            refreshed = await session.execute(
                select(MeetingModel).where(MeetingModel.id == meeting_id)
            )
            model = refreshed.scalar_one()
            await session.refresh(model)
            return _model_to_meeting(model)
