"""Typed failures raised by the meeting processing stages.

Every stage adapter surfaces one of these to the PipelineOrchestrator,
which halts the run and annotates the meeting record. The ErrorKind on
each class drives logging severity, metrics labels, and whether
operators get alerted.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure taxonomy for pipeline stages."""

    TRANSIENT_PROVIDER = "transient_provider"
    CONFIGURATION = "configuration"
    INPUT_REJECTED = "input_rejected"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """Base class for all stage failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ── Transient provider failures ──────────────────────────────────────────────


class RateLimited(PipelineError):
    """Provider rejected the call with a rate limit (HTTP 429)."""

    kind = ErrorKind.TRANSIENT_PROVIDER


class ProviderUnavailable(PipelineError):
    """Provider unreachable or returned a server-side error."""

    kind = ErrorKind.TRANSIENT_PROVIDER


class ProviderTimeout(PipelineError):
    """Stage call exceeded its time budget."""

    kind = ErrorKind.TRANSIENT_PROVIDER


# ── Configuration failures ───────────────────────────────────────────────────


class AuthFailure(PipelineError):
    """Provider rejected our credentials."""

    kind = ErrorKind.CONFIGURATION


class ProviderNotConfigured(PipelineError):
    """No credentials configured for a required provider."""

    kind = ErrorKind.CONFIGURATION


# ── Input rejected ───────────────────────────────────────────────────────────


class PayloadTooLarge(PipelineError):
    """Media exceeds the transcription provider's size ceiling."""

    kind = ErrorKind.INPUT_REJECTED


class UnsupportedMedia(PipelineError):
    """Media type is not an accepted audio/video container."""

    kind = ErrorKind.INPUT_REJECTED


class MalformedExtraction(PipelineError):
    """Structured extraction output could not be parsed or validated."""

    kind = ErrorKind.INPUT_REJECTED


# ── Unknown ──────────────────────────────────────────────────────────────────


class SynthesisFailed(PipelineError):
    """Text generation failed for a reason other than rate limiting."""

    kind = ErrorKind.UNKNOWN


class ExtractionFailed(PipelineError):
    """Action-item extraction failed for a reason other than bad output."""

    kind = ErrorKind.UNKNOWN


# Provider failures the text stages re-raise as-is; anything else they
# wrap in their own generic failure.
PROPAGATED_PROVIDER_ERRORS: tuple[type[PipelineError], ...] = (
    RateLimited,
    AuthFailure,
    ProviderNotConfigured,
)
