"""Task repository -- async persistence for task records.

Same session_factory pattern as MeetingRepository. create_tasks inserts
a whole batch in one transaction so a partially written batch is never
visible.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.meetflow.tasks.models import TaskModel
from src.meetflow.tasks.schemas import (
    TaskCreate,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)

logger = structlog.get_logger(__name__)


def _model_to_task(model: TaskModel) -> TaskRecord:
    """Convert TaskModel to TaskRecord schema."""
    return TaskRecord(
        id=model.id,
        name=model.name,
        owner=model.owner,
        status=TaskStatus(model.status),
        deadline=model.deadline,
        priority=TaskPriority(model.priority),
        source_meeting=model.source_meeting,
        team=model.team,
        description=model.description or "",
        created_at=model.created_at,
    )


class TaskRepository:
    """Async persistence for task records.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def create_tasks(self, tasks: list[TaskCreate]) -> list[TaskRecord]:
        """Insert tasks in one transaction, preserving input order.

        Returns:
            Persisted TaskRecords, one per input, same order.
        """
        if not tasks:
            return []

        async for session in self._session_factory():
            models = [
                TaskModel(
                    name=t.name,
                    owner=t.owner,
                    status=t.status.value,
                    deadline=t.deadline,
                    priority=t.priority.value,
                    source_meeting=t.source_meeting,
                    team=t.team,
                    description=t.description,
                )
                for t in tasks
            ]
            session.add_all(models)
            await session.commit()
            for model in models:
                await session.refresh(model)
            return [_model_to_task(m) for m in models]

    async def list_tasks_for_meeting(self, meeting_id: str) -> list[TaskRecord]:
        """Tasks whose source_meeting is the given meeting, oldest first."""
        async for session in self._session_factory():
            stmt = (
                select(TaskModel)
                .where(TaskModel.source_meeting == meeting_id)
                .order_by(TaskModel.created_at)
            )
            result = await session.execute(stmt)
            return [_model_to_task(m) for m in result.scalars().all()]
