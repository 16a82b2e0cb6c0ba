"""Prometheus metrics, Sentry integration, and pipeline stage tracking.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- init_sentry(): Initialize Sentry for operator alerting
- capture_operator_alert(): Forward configuration failures to Sentry
- track_stage(): Context manager for pipeline stage metrics
- get_metrics_response(): FastAPI route handler body for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Pipeline Metrics ─────────────────────────────────────────────────────────

pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Meeting processing runs by outcome",
    ["outcome"],
)

pipeline_stage_duration_seconds = Histogram(
    "pipeline_stage_duration_seconds",
    "Duration of a single pipeline stage in seconds",
    ["stage"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

pipeline_stage_failures_total = Counter(
    "pipeline_stage_failures_total",
    "Pipeline stage failures by error kind",
    ["stage", "error_kind"],
)

tasks_materialized_total = Counter(
    "tasks_materialized_total",
    "Task records created from extracted action items",
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Stage Metrics Helper ─────────────────────────────────────────────────────


@asynccontextmanager
async def track_stage(stage: str) -> AsyncGenerator[None, None]:
    """Record the duration of one pipeline stage.

    Usage:
        async with track_stage("transcription"):
            result = await adapter.transcribe(...)

    The duration is observed whether the stage succeeds or raises;
    failures are counted separately by the orchestrator, which knows
    the error kind.
    """
    start_time = time.perf_counter()
    try:
        yield
    finally:
        pipeline_stage_duration_seconds.labels(stage=stage).observe(
            time.perf_counter() - start_time
        )


# ── Sentry Integration ───────────────────────────────────────────────────────


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
    )


def capture_operator_alert(exc: BaseException, **tags: str) -> None:
    """Send an exception to Sentry tagged for operator attention.

    A no-op when Sentry was never initialized (the SDK drops events
    without a client).
    """
    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        scope.set_tag("alert", "operator")
        sentry_sdk.capture_exception(exc)


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
