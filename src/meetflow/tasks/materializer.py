"""TaskMaterializer -- turns extracted action items into task records.

One TaskRecord per ActionItem, written as a single batch. Not idempotent:
calling it twice with the same items creates two sets of tasks.
"""

from __future__ import annotations

import structlog

from src.meetflow.core.monitoring import tasks_materialized_total
from src.meetflow.meetings.schemas import ActionItem
from src.meetflow.tasks.repository import TaskRepository
from src.meetflow.tasks.schemas import (
    TaskCreate,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)

logger = structlog.get_logger(__name__)

DESCRIPTION_PREFIX = "Auto-generated from meeting action item: "


def action_item_to_task(
    item: ActionItem, meeting_id: str, project_id: str
) -> TaskCreate:
    """Build the insert payload for one action item.

    Owner and deadline pass through as-is; ActionItem has already turned
    the "Not specified" sentinel into None, so an unassigned item stays
    unowned.
    """
    return TaskCreate(
        name=item.description,
        owner=item.assignee,
        status=TaskStatus.PENDING,
        deadline=item.deadline,
        priority=item.priority or TaskPriority.MEDIUM,
        source_meeting=meeting_id,
        team=project_id,
        description=f"{DESCRIPTION_PREFIX}{item.description}",
    )


class TaskMaterializer:
    """Persists action items as tasks linked to their source meeting.

    Args:
        task_repository: Store the tasks are written to.
    """

    def __init__(self, task_repository: TaskRepository) -> None:
        self._task_repository = task_repository

    async def materialize(
        self,
        action_items: list[ActionItem],
        meeting_id: str,
        project_id: str,
    ) -> list[TaskRecord]:
        """Create one task per action item, in input order.

        Args:
            action_items: Extracted items; may be empty.
            meeting_id: Source meeting back-reference.
            project_id: Team/project back-reference.

        Returns:
            The created TaskRecords. Empty input returns an empty list
            without touching the store.
        """
        if not action_items:
            return []

        payloads = [
            action_item_to_task(item, meeting_id, project_id) for item in action_items
        ]
        tasks = await self._task_repository.create_tasks(payloads)

        tasks_materialized_total.inc(len(tasks))
        logger.info(
            "tasks.materialized",
            meeting_id=meeting_id,
            project_id=project_id,
            count=len(tasks),
        )
        return tasks
