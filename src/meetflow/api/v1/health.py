"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Liveness
checks nothing but the process; readiness also pings the database and
reports whether inference credentials are configured.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.meetflow.config import get_settings
from src.meetflow.core.database import get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_dependencies(request: Request) -> dict:
    """Check database connectivity and provider credentials."""
    checks: dict = {"database": "ok", "llm": "ok", "transcription": "ok"}

    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)

    settings = get_settings()
    if not (settings.ANTHROPIC_API_KEY or settings.OPENAI_API_KEY):
        checks["llm"] = "no_keys"
    if not settings.OPENAI_API_KEY:
        checks["transcription"] = "no_keys"

    orchestrator = getattr(request.app.state, "pipeline_orchestrator", None)
    checks["pipeline_runs_in_flight"] = orchestrator.in_flight if orchestrator else 0
    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 when the database answers, 503 otherwise.

    Missing provider keys are reported but do not fail readiness; runs
    started without them fail with a configuration marker instead.
    """
    checks = await _check_dependencies(request)
    healthy = checks.get("database") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if healthy else "degraded",
            "checks": checks,
        },
    )
