"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS,
Sentry, lifespan wiring of the processing pipeline onto app.state, and
the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import openai
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.meetflow.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.meetflow.api.v1.router import router as v1_router
from src.meetflow.config import Settings, get_settings
from src.meetflow.core.database import close_db, get_session, init_db
from src.meetflow.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.meetflow.meetings.minutes.extractor import ActionItemExtractor
from src.meetflow.meetings.minutes.generator import MinutesSynthesizer
from src.meetflow.meetings.minutes.summary import SummarySynthesizer
from src.meetflow.meetings.pipeline import PipelineOrchestrator
from src.meetflow.meetings.repository import MeetingRepository
from src.meetflow.meetings.storage import MediaStorage
from src.meetflow.meetings.transcription import TranscriptionAdapter
from src.meetflow.services.llm import LLMService
from src.meetflow.tasks.materializer import TaskMaterializer
from src.meetflow.tasks.repository import TaskRepository


def build_orchestrator(
    settings: Settings,
    meeting_repository: MeetingRepository,
    task_repository: TaskRepository,
) -> PipelineOrchestrator:
    """Construct the inference clients and wire every stage together."""
    llm_service = LLMService(settings=settings)

    openai_client = None
    if settings.OPENAI_API_KEY:
        openai_client = openai.AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            max_retries=0,
        )

    return PipelineOrchestrator(
        transcriber=TranscriptionAdapter(
            client=openai_client,
            model=settings.TRANSCRIPTION_MODEL,
            language=settings.TRANSCRIPTION_LANGUAGE or None,
            max_bytes=settings.TRANSCRIPTION_MAX_BYTES,
        ),
        minutes_synthesizer=MinutesSynthesizer(llm_service=llm_service),
        extractor=ActionItemExtractor(llm_service=llm_service),
        summary_synthesizer=SummarySynthesizer(llm_service=llm_service),
        materializer=TaskMaterializer(task_repository=task_repository),
        meeting_repository=meeting_repository,
        stage_timeout=settings.STAGE_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and the pipeline; drain runs on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    meeting_repo = MeetingRepository(session_factory=get_session)
    task_repo = TaskRepository(session_factory=get_session)
    app.state.meeting_repository = meeting_repo
    app.state.task_repository = task_repo
    app.state.media_storage = MediaStorage(root=settings.MEDIA_ROOT)

    # Without the pipeline the upload route answers 503; reads keep working.
    try:
        app.state.pipeline_orchestrator = build_orchestrator(settings, meeting_repo, task_repo)
        log.info(
            "pipeline.initialized",
            llm_configured=bool(settings.ANTHROPIC_API_KEY or settings.OPENAI_API_KEY),
            transcription_configured=bool(settings.OPENAI_API_KEY),
            stage_timeout_seconds=settings.STAGE_TIMEOUT_SECONDS,
        )
    except Exception:
        log.warning("pipeline.init_failed", exc_info=True)
        app.state.pipeline_orchestrator = None

    yield

    orchestrator = getattr(app.state, "pipeline_orchestrator", None)
    if orchestrator is not None and orchestrator.in_flight:
        log.info("pipeline.draining", in_flight=orchestrator.in_flight)
        await orchestrator.wait_idle()

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meetflow API",
        version="0.1.0",
        description="Meeting recordings to transcripts, minutes, summaries and tasks",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
