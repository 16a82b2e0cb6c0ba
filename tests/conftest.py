"""Shared test doubles and fixtures.

Provides:
- InMemoryMeetingRepository / InMemoryTaskRepository: mirror the
  SQLAlchemy repositories' interfaces, including partial-update
  semantics and field validation
- FakeLLMService: canned completion text per stage and a canned
  ActionItemList for structured calls
- Fixtures wiring these into the real stage classes
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.meetflow.meetings.minutes.extractor import ActionItemExtractor
from src.meetflow.meetings.minutes.generator import MinutesSynthesizer
from src.meetflow.meetings.minutes.summary import SummarySynthesizer
from src.meetflow.meetings.pipeline import PipelineOrchestrator
from src.meetflow.meetings.schemas import (
    PIPELINE_FIELDS,
    ActionItemList,
    MeetingCreate,
    MeetingRecord,
    TranscriptionResult,
)
from src.meetflow.tasks.materializer import TaskMaterializer
from src.meetflow.tasks.schemas import TaskCreate, TaskRecord

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)

TRANSCRIPT_TEXT = "Alice will send the report by Friday. Bob to review the budget."

MINUTES_RESPONSE = """## 1. Meeting Overview
Weekly sync on the Q4 report and budget.

## 3. Key Discussion Points
- Report status
- Budget review

## 5. Action Items
- Alice: send the report by Friday
- Bob: review the budget
"""

SUMMARY_RESPONSE = (
    "The team met to align on the Q4 report. Alice sends the report by "
    "Friday and Bob reviews the budget."
)


# ── Repository Doubles ───────────────────────────────────────────────────────


class InMemoryMeetingRepository:
    """In-memory test double for MeetingRepository."""

    def __init__(self) -> None:
        self.meetings: dict[str, MeetingRecord] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def create_meeting(self, data: MeetingCreate) -> MeetingRecord:
        meeting = MeetingRecord(
            id=uuid.uuid4().hex,
            project_id=data.project_id,
            title=data.title,
            date=data.date,
            recording_url=data.recording_url,
            participants=list(data.participants),
            created_at=datetime.now(timezone.utc),
        )
        self.meetings[meeting.id] = meeting
        return meeting

    async def get_meeting(self, meeting_id: str) -> MeetingRecord | None:
        return self.meetings.get(meeting_id)

    async def list_meetings(self, project_id: str) -> list[MeetingRecord]:
        rows = [m for m in self.meetings.values() if m.project_id == project_id]
        return sorted(rows, key=lambda m: m.date, reverse=True)

    async def update_meeting(self, meeting_id: str, **fields: Any) -> MeetingRecord:
        unknown = set(fields) - PIPELINE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            raise ValueError(f"Meeting not found: id={meeting_id}")
        self.updates.append((meeting_id, dict(fields)))
        updated = meeting.model_copy(
            update={**fields, "updated_at": datetime.now(timezone.utc)}
        )
        self.meetings[meeting_id] = updated
        return updated


class InMemoryTaskRepository:
    """In-memory test double for TaskRepository."""

    def __init__(self) -> None:
        self.tasks: list[TaskRecord] = []
        self.create_calls = 0

    async def create_tasks(self, tasks: list[TaskCreate]) -> list[TaskRecord]:
        self.create_calls += 1
        created = [
            TaskRecord(
                **t.model_dump(),
                id=uuid.uuid4().hex,
                created_at=datetime.now(timezone.utc),
            )
            for t in tasks
        ]
        self.tasks.extend(created)
        return created

    async def list_tasks_for_meeting(self, meeting_id: str) -> list[TaskRecord]:
        return [t for t in self.tasks if t.source_meeting == meeting_id]


# ── Inference Doubles ────────────────────────────────────────────────────────


class FakeLLMService:
    """Stands in for LLMService; responses are keyed by the metadata stage."""

    def __init__(self) -> None:
        self.responses: dict[str, str] = {
            "minutes": MINUTES_RESPONSE,
            "summary": SUMMARY_RESPONSE,
        }
        self.action_items = ActionItemList(action_items=[])
        self.completion = AsyncMock(side_effect=self._completion)
        self.structured = AsyncMock(side_effect=self._structured)

    async def _completion(
        self,
        messages: list[dict],
        model: str = "reasoning",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict:
        stage = (metadata or {}).get("stage", "")
        return {"content": self.responses.get(stage, ""), "model": "fake", "usage": {}}

    async def _structured(self, messages, response_model, **kwargs):
        return self.action_items


def make_transcriber(text: str = TRANSCRIPT_TEXT) -> MagicMock:
    transcriber = MagicMock()
    transcriber.transcribe = AsyncMock(
        return_value=TranscriptionResult(text=text, duration=42.0, language="en")
    )
    return transcriber


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def meeting_repo() -> InMemoryMeetingRepository:
    return InMemoryMeetingRepository()


@pytest.fixture
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def llm() -> FakeLLMService:
    return FakeLLMService()


@pytest.fixture
def transcriber() -> MagicMock:
    return make_transcriber()


@pytest.fixture
def orchestrator(transcriber, llm, meeting_repo, task_repo) -> PipelineOrchestrator:
    """Orchestrator with real text stages over the fake LLM and stores."""
    return PipelineOrchestrator(
        transcriber=transcriber,
        minutes_synthesizer=MinutesSynthesizer(llm_service=llm),
        extractor=ActionItemExtractor(llm_service=llm),
        summary_synthesizer=SummarySynthesizer(llm_service=llm),
        materializer=TaskMaterializer(task_repository=task_repo),
        meeting_repository=meeting_repo,
        stage_timeout=5.0,
    )


@pytest.fixture
async def meeting(meeting_repo) -> MeetingRecord:
    """A freshly uploaded meeting with no pipeline output yet."""
    return await meeting_repo.create_meeting(
        MeetingCreate(
            project_id="p1",
            title="Q4 Planning",
            date=NOW,
            recording_url="file:///tmp/q4.mp3",
            participants=["Alice", "Bob"],
        )
    )
