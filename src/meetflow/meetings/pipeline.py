"""Background meeting processing: recording -> transcript -> minutes -> tasks.

PipelineOrchestrator sequences the five stages for one uploaded
recording and writes each result back to the meeting record before the
next stage starts:

1. Transcribe the media             -> meeting.transcript
2. Synthesize minutes               -> meeting.minutes
3. Extract action items (transcript) -> in memory only
4. Summarize minutes + action items -> meeting.summary
5. Materialize tasks                -> meeting.task_ids, meeting.processed_at

Each stage call is bounded by a per-stage timeout. The first failure
halts the run and writes a failure marker (processing_error +
failed_stage) through a partial update, so results of earlier stages
stay on the record. Nothing is retried inside a run; a failed run is
terminal until someone uploads again.

There is no per-meeting lock: two runs for the same meeting both
materialize tasks, and the last writer wins per meeting field.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

import structlog

from src.meetflow.core.monitoring import (
    capture_operator_alert,
    pipeline_runs_total,
    pipeline_stage_failures_total,
    track_stage,
)
from src.meetflow.meetings.errors import ErrorKind, PipelineError, ProviderTimeout
from src.meetflow.meetings.minutes.extractor import ActionItemExtractor
from src.meetflow.meetings.minutes.generator import MinutesSynthesizer
from src.meetflow.meetings.minutes.summary import SummarySynthesizer
from src.meetflow.meetings.repository import MeetingRepository
from src.meetflow.meetings.schemas import SourceKind
from src.meetflow.meetings.transcription import TranscriptionAdapter
from src.meetflow.tasks.materializer import TaskMaterializer

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PipelineStage(str, Enum):
    """Stage names as written to failed_stage and metric labels."""

    TRANSCRIPTION = "transcription"
    MINUTES = "minutes"
    ACTION_ITEMS = "action_items"
    SUMMARY = "summary"
    TASKS = "tasks"


def failure_marker(stage: PipelineStage, exc: BaseException) -> str:
    """Human-readable annotation stored on a failed meeting."""
    if isinstance(exc, PipelineError):
        message = exc.message
    else:
        message = str(exc) or type(exc).__name__
    return f"AI processing failed at {stage.value}: {message}"


class PipelineOrchestrator:
    """Runs the processing stages for uploaded meetings.

    Every collaborator is injected, so tests can drive the orchestrator
    with fakes and no network.

    Args:
        transcriber: Speech-to-text adapter.
        minutes_synthesizer: Minutes generator.
        extractor: Action-item extractor.
        summary_synthesizer: Stakeholder digest generator.
        materializer: Task materializer.
        meeting_repository: Store the meeting record is read from and written to.
        stage_timeout: Seconds allowed per stage call; None disables the bound.
    """

    def __init__(
        self,
        transcriber: TranscriptionAdapter,
        minutes_synthesizer: MinutesSynthesizer,
        extractor: ActionItemExtractor,
        summary_synthesizer: SummarySynthesizer,
        materializer: TaskMaterializer,
        meeting_repository: MeetingRepository,
        stage_timeout: float | None = 300.0,
    ) -> None:
        self._transcriber = transcriber
        self._minutes = minutes_synthesizer
        self._extractor = extractor
        self._summary = summary_synthesizer
        self._materializer = materializer
        self._meetings = meeting_repository
        self._stage_timeout = stage_timeout
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        """Number of runs started by trigger() that have not finished."""
        return len(self._in_flight)

    # ── Entry points ─────────────────────────────────────────────────────────

    def trigger(
        self,
        media: bytes,
        mime_hint: str,
        meeting_id: str,
        meeting_title: str,
        participant_names: list[str],
        project_id: str,
    ) -> asyncio.Task[None]:
        """Schedule a run in the background and return immediately.

        The task reference is held until the run finishes so the event
        loop cannot garbage-collect it mid-flight.
        """
        task = asyncio.create_task(
            self.run(
                media,
                mime_hint,
                meeting_id,
                meeting_title,
                participant_names,
                project_id,
            ),
            name=f"meeting_pipeline_{meeting_id}",
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        logger.info("pipeline.triggered", meeting_id=meeting_id, in_flight=len(self._in_flight))
        return task

    async def wait_idle(self) -> None:
        """Wait until every triggered run has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def run(
        self,
        media: bytes,
        mime_hint: str,
        meeting_id: str,
        meeting_title: str,
        participant_names: list[str],
        project_id: str,
    ) -> None:
        """Process one recording end to end. Never raises.

        Args:
            media: Raw recording bytes, as uploaded.
            mime_hint: MIME type reported by the uploader.
            meeting_id: Meeting record the results are written to.
            meeting_title: Title used in the minutes prompt.
            participant_names: Attendee names; may be empty.
            project_id: Team/project the generated tasks belong to.
        """
        log = logger.bind(meeting_id=meeting_id, project_id=project_id)
        log.info("pipeline.started", size_bytes=len(media), mime=mime_hint)

        stage = PipelineStage.TRANSCRIPTION
        try:
            transcription = await self._call_stage(
                stage, self._transcriber.transcribe(media, mime_hint)
            )
            await self._meetings.update_meeting(meeting_id, transcript=transcription.text)
            log.info("pipeline.transcript_saved", chars=len(transcription.text))

            stage = PipelineStage.MINUTES
            minutes = await self._call_stage(
                stage,
                self._minutes.synthesize(
                    transcription.text, meeting_title, participant_names
                ),
            )
            await self._meetings.update_meeting(meeting_id, minutes=minutes)
            log.info("pipeline.minutes_saved", chars=len(minutes))

            stage = PipelineStage.ACTION_ITEMS
            action_items = await self._call_stage(
                stage, self._extractor.extract(transcription.text, SourceKind.TRANSCRIPT)
            )
            log.info("pipeline.action_items_extracted", count=len(action_items))

            stage = PipelineStage.SUMMARY
            summary = await self._call_stage(
                stage, self._summary.summarize(minutes, action_items)
            )
            await self._meetings.update_meeting(meeting_id, summary=summary)
            log.info("pipeline.summary_saved", chars=len(summary))

            stage = PipelineStage.TASKS
            tasks = await self._call_stage(
                stage,
                self._materializer.materialize(action_items, meeting_id, project_id),
            )
            await self._meetings.update_meeting(
                meeting_id,
                task_ids=[task.id for task in tasks],
                processed_at=datetime.now(timezone.utc),
                processing_error=None,
                failed_stage=None,
            )
        except Exception as exc:
            await self._record_failure(meeting_id, stage, exc)
            return

        pipeline_runs_total.labels(outcome="completed").inc()
        log.info("pipeline.completed", tasks_created=len(tasks))

    # ── Internals ────────────────────────────────────────────────────────────

    async def _call_stage(self, stage: PipelineStage, call: Awaitable[T]) -> T:
        async with track_stage(stage.value):
            try:
                return await asyncio.wait_for(call, timeout=self._stage_timeout)
            except asyncio.TimeoutError as exc:
                raise ProviderTimeout(
                    f"{stage.value} did not finish within {self._stage_timeout:g}s"
                ) from exc

    async def _record_failure(
        self, meeting_id: str, stage: PipelineStage, exc: Exception
    ) -> None:
        """Annotate the meeting with the failure and report it.

        Only processing_error and failed_stage are written; fields from
        earlier stages are left as they are.
        """
        kind = exc.kind if isinstance(exc, PipelineError) else ErrorKind.UNKNOWN
        marker = failure_marker(stage, exc)

        pipeline_stage_failures_total.labels(stage=stage.value, error_kind=kind.value).inc()
        pipeline_runs_total.labels(outcome="failed").inc()

        log = logger.bind(
            meeting_id=meeting_id,
            stage=stage.value,
            error_kind=kind.value,
            error_type=type(exc).__name__,
        )
        if kind is ErrorKind.CONFIGURATION:
            log.error("pipeline.configuration_error", error=str(exc))
            capture_operator_alert(exc, stage=stage.value, meeting_id=meeting_id)
        elif kind is ErrorKind.UNKNOWN:
            log.exception("pipeline.stage_failed", exc_info=exc)
        else:
            log.warning("pipeline.stage_failed", error=str(exc))

        try:
            await self._meetings.update_meeting(
                meeting_id,
                processing_error=marker,
                failed_stage=stage.value,
            )
        except Exception:
            # run() must not raise
            log.exception("pipeline.failure_marker_not_saved", marker=marker)
