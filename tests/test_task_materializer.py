"""Tests for TaskMaterializer, including the extract-then-materialize flow."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from prometheus_client import REGISTRY

from src.meetflow.meetings.minutes.extractor import ActionItemExtractor
from src.meetflow.meetings.schemas import (
    NOT_SPECIFIED,
    ActionItem,
    ActionItemList,
    ExtractedActionItem,
)
from src.meetflow.tasks.materializer import DESCRIPTION_PREFIX, TaskMaterializer
from src.meetflow.tasks.schemas import TaskPriority, TaskStatus


def _materialized_count() -> float:
    return REGISTRY.get_sample_value("tasks_materialized_total") or 0.0


async def test_empty_input_creates_nothing(task_repo):
    materializer = TaskMaterializer(task_repository=task_repo)

    tasks = await materializer.materialize([], "m1", "p1")

    assert tasks == []
    assert task_repo.create_calls == 0
    assert task_repo.tasks == []


async def test_sentinel_assignee_leaves_owner_unset(task_repo):
    item = ExtractedActionItem(
        task="Book the offsite", assignee=NOT_SPECIFIED, deadline=NOT_SPECIFIED
    ).to_action_item()

    tasks = await TaskMaterializer(task_repository=task_repo).materialize([item], "m1", "p1")

    assert len(tasks) == 1
    assert tasks[0].owner is None
    assert tasks[0].deadline is None


async def test_defaults_and_back_references(task_repo):
    item = ActionItem(description="Update the roadmap", assignee="Carol", deadline="next sprint")

    [task] = await TaskMaterializer(task_repository=task_repo).materialize([item], "m9", "p3")

    assert task.name == "Update the roadmap"
    assert task.owner == "Carol"
    assert task.deadline == "next sprint"
    assert task.priority == TaskPriority.MEDIUM
    assert task.status == TaskStatus.PENDING
    assert task.source_meeting == "m9"
    assert task.team == "p3"
    assert task.description == f"{DESCRIPTION_PREFIX}Update the roadmap"


async def test_extracted_priority_is_kept(task_repo):
    item = ActionItem(description="Fix prod outage", priority="urgent")

    [task] = await TaskMaterializer(task_repository=task_repo).materialize([item], "m1", "p1")

    assert task.priority == TaskPriority.URGENT


async def test_repeated_calls_create_duplicates(task_repo):
    materializer = TaskMaterializer(task_repository=task_repo)
    items = [ActionItem(description="Send the report", assignee="Alice")]

    first = await materializer.materialize(items, "m1", "p1")
    second = await materializer.materialize(items, "m1", "p1")

    assert len(task_repo.tasks) == 2
    assert first[0].id != second[0].id


async def test_materialized_counter_increments(task_repo):
    before = _materialized_count()
    items = [ActionItem(description="A"), ActionItem(description="B")]

    await TaskMaterializer(task_repository=task_repo).materialize(items, "m1", "p1")

    assert _materialized_count() == before + 2


async def test_alice_and_bob_end_to_end(task_repo):
    """Transcript -> extractor -> materializer for meeting m1 / project p1."""
    llm = MagicMock()
    llm.structured = AsyncMock(
        return_value=ActionItemList(
            action_items=[
                ExtractedActionItem(
                    task="Send the report", assignee="Alice", deadline="by Friday"
                ),
                ExtractedActionItem(
                    task="Review the budget", assignee="Bob", deadline=NOT_SPECIFIED
                ),
            ]
        )
    )
    transcript = "Alice will send the report by Friday. Bob to review the budget."

    items = await ActionItemExtractor(llm_service=llm).extract(transcript)
    tasks = await TaskMaterializer(task_repository=task_repo).materialize(items, "m1", "p1")

    assert len(tasks) == 2
    alice, bob = tasks
    assert "send the report" in alice.name.lower()
    assert alice.owner == "Alice"
    assert "Friday" in alice.deadline
    assert "review the budget" in bob.name.lower()
    assert bob.owner == "Bob"
    for task in tasks:
        assert task.source_meeting == "m1"
        assert task.team == "p1"
        assert task.status == TaskStatus.PENDING
        assert task.description.startswith("Auto-generated from meeting action item:")
