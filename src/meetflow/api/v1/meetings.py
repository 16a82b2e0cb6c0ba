"""REST endpoints for meeting uploads and processing results.

POST /upload stores the recording, creates the placeholder meeting
record and hands the bytes to the PipelineOrchestrator in the
background. The response is always 202 once the upload is accepted;
AI-stage failures only show up later on the meeting record
(processing_status / processing_error), never in this response.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status
from pydantic import BaseModel, Field

from src.meetflow.config import get_settings
from src.meetflow.meetings.schemas import MeetingCreate, MeetingRecord
from src.meetflow.meetings.transcription import SUPPORTED_MEDIA_TYPES
from src.meetflow.tasks.schemas import TaskRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/meetings", tags=["meetings"])

UPLOAD_ACCEPTED_MESSAGE = "Meeting uploaded successfully. AI processing started."


# ── Response Schemas ─────────────────────────────────────────────────────────


class UploadResponse(BaseModel):
    """Acknowledgment for an accepted upload."""

    id: str
    title: str
    project_id: str
    recording_url: str | None = None
    status: str = "processing"
    message: str = UPLOAD_ACCEPTED_MESSAGE


class TaskResponse(BaseModel):
    id: str
    name: str
    owner: str | None = None
    status: str
    deadline: str | None = None
    priority: str
    description: str = ""
    created_at: str


class MeetingDetailResponse(BaseModel):
    """Meeting with pipeline outputs and the tasks generated from it."""

    id: str
    project_id: str
    title: str
    date: str
    recording_url: str | None = None
    participants: list[str] = Field(default_factory=list)
    transcript: str | None = None
    minutes: str | None = None
    summary: str | None = None
    task_ids: list[str] = Field(default_factory=list)
    tasks: list[TaskResponse] = Field(default_factory=list)
    processing_status: str
    processing_error: str | None = None
    failed_stage: str | None = None
    processed_at: str | None = None
    created_at: str


class MeetingListItem(BaseModel):
    """Meeting summary row for project listings."""

    id: str
    title: str
    date: str
    recording_url: str | None = None
    processing_status: str
    has_transcript: bool
    has_minutes: bool
    has_summary: bool
    task_count: int
    created_at: str


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_state(request: Request, name: str, label: str) -> Any:
    """Retrieve a component from app.state, 503 if not available."""
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return component


def _get_meeting_repository(request: Request) -> Any:
    return _get_state(request, "meeting_repository", "Meeting repository")


def _get_task_repository(request: Request) -> Any:
    return _get_state(request, "task_repository", "Task repository")


def _get_media_storage(request: Request) -> Any:
    return _get_state(request, "media_storage", "Media storage")


def _get_orchestrator(request: Request) -> Any:
    return _get_state(request, "pipeline_orchestrator", "Processing pipeline")


# ── Conversion Helpers ───────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _task_to_response(task: TaskRecord) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        name=task.name,
        owner=task.owner,
        status=task.status.value,
        deadline=task.deadline,
        priority=task.priority.value,
        description=task.description,
        created_at=task.created_at.isoformat(),
    )


def _meeting_to_detail(
    meeting: MeetingRecord, tasks: list[TaskRecord]
) -> MeetingDetailResponse:
    return MeetingDetailResponse(
        id=meeting.id,
        project_id=meeting.project_id,
        title=meeting.title,
        date=meeting.date.isoformat(),
        recording_url=meeting.recording_url,
        participants=meeting.participants,
        transcript=meeting.transcript,
        minutes=meeting.minutes,
        summary=meeting.summary,
        task_ids=meeting.task_ids,
        tasks=[_task_to_response(t) for t in tasks],
        processing_status=meeting.processing_status.value,
        processing_error=meeting.processing_error,
        failed_stage=meeting.failed_stage,
        processed_at=_iso(meeting.processed_at),
        created_at=meeting.created_at.isoformat(),
    )


def _meeting_to_list_item(meeting: MeetingRecord) -> MeetingListItem:
    return MeetingListItem(
        id=meeting.id,
        title=meeting.title,
        date=meeting.date.isoformat(),
        recording_url=meeting.recording_url,
        processing_status=meeting.processing_status.value,
        has_transcript=bool(meeting.transcript),
        has_minutes=bool(meeting.minutes),
        has_summary=bool(meeting.summary),
        task_count=len(meeting.task_ids),
        created_at=meeting.created_at.isoformat(),
    )


def parse_participants(raw: str | None) -> list[str]:
    """Split a comma-separated participant string, dropping blanks."""
    if not raw:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_meeting(
    request: Request,
    recording: UploadFile = File(...),
    project_id: str = Form(..., min_length=1),
    title: str = Form(..., min_length=1, max_length=255),
    participants: str | None = Form(default=None),
) -> UploadResponse:
    """Accept a recording and start background processing.

    Returns 400 for an unsupported media type or a file over the upload
    limit. Everything after acceptance is asynchronous.
    """
    settings = get_settings()
    meeting_repo = _get_meeting_repository(request)
    storage = _get_media_storage(request)
    orchestrator = _get_orchestrator(request)

    mime = (recording.content_type or "").split(";", 1)[0].strip().lower()
    if mime not in SUPPORTED_MEDIA_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Please upload audio or video files only.",
        )

    data = await recording.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "File too large. Maximum size is "
                f"{settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB."
            ),
        )
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload a recording file",
        )

    participant_names = parse_participants(participants)
    stored = await storage.store(data, recording.filename or "recording", folder="meetings")

    meeting = await meeting_repo.create_meeting(
        MeetingCreate(
            project_id=project_id,
            title=title,
            recording_url=stored.access_url,
            participants=participant_names,
        )
    )

    orchestrator.trigger(
        data,
        mime,
        meeting.id,
        meeting.title,
        participant_names,
        meeting.project_id,
    )

    logger.info(
        "meeting.upload_accepted",
        meeting_id=meeting.id,
        project_id=project_id,
        size_bytes=len(data),
        mime=mime,
    )
    return UploadResponse(
        id=meeting.id,
        title=meeting.title,
        project_id=meeting.project_id,
        recording_url=meeting.recording_url,
    )


@router.get("/project/{project_id}", response_model=list[MeetingListItem])
async def list_project_meetings(project_id: str, request: Request) -> list[MeetingListItem]:
    """List a project's meetings, newest first."""
    repo = _get_meeting_repository(request)
    meetings = await repo.list_meetings(project_id)
    return [_meeting_to_list_item(m) for m in meetings]


@router.get("/{meeting_id}", response_model=MeetingDetailResponse)
async def get_meeting(meeting_id: str, request: Request) -> MeetingDetailResponse:
    """Get a meeting with its processing state and generated tasks."""
    repo = _get_meeting_repository(request)
    task_repo = _get_task_repository(request)

    meeting = await repo.get_meeting(meeting_id)
    if meeting is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting not found: {meeting_id}",
        )
    tasks = await task_repo.list_tasks_for_meeting(meeting_id)
    return _meeting_to_detail(meeting, tasks)
