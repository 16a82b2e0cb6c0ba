"""Batch speech-to-text for uploaded recordings via OpenAI Whisper.

TranscriptionAdapter converts raw media bytes into a TranscriptionResult
with segment- and word-level timestamps (verbose_json). It validates the
media type and the provider's 25 MB ceiling before spending a request,
and translates OpenAI SDK errors into the pipeline error taxonomy. It
never retries: retry policy belongs to whoever re-triggers the run.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from src.meetflow.meetings.errors import (
    AuthFailure,
    PayloadTooLarge,
    PipelineError,
    ProviderNotConfigured,
    ProviderUnavailable,
    RateLimited,
    UnsupportedMedia,
)
from src.meetflow.meetings.schemas import TranscriptionResult

logger = structlog.get_logger(__name__)

# Accepted upload containers and the file extension Whisper expects for each
MEDIA_EXTENSIONS: dict[str, str] = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/m4a": "m4a",
    "audio/ogg": "ogg",
    "video/mp4": "mp4",
    "video/mpeg": "mpeg",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
}

SUPPORTED_MEDIA_TYPES = frozenset(MEDIA_EXTENSIONS)

PROVIDER_MAX_BYTES = 25 * 1024 * 1024


def _translate_openai_error(exc: Exception) -> PipelineError | None:
    """Map an OpenAI SDK exception onto the pipeline error taxonomy."""
    if isinstance(exc, openai.RateLimitError):
        return RateLimited("Transcription rate limit exceeded. Please try again later.")
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthFailure("Transcription provider authentication failed")
    if isinstance(exc, openai.APIConnectionError):
        # Includes APITimeoutError
        return ProviderUnavailable("Transcription provider unreachable")
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code == 413:
            return PayloadTooLarge("Audio file too large. Maximum size is 25MB.")
        if exc.status_code in (400, 415):
            return UnsupportedMedia(f"Transcription provider rejected the media: {exc.message}")
        if exc.status_code >= 500:
            return ProviderUnavailable(
                f"Transcription provider error (HTTP {exc.status_code})"
            )
    return None


class TranscriptionAdapter:
    """Speech-to-text over OpenAI's audio transcription endpoint.

    Args:
        client: Configured AsyncOpenAI client, or None when no API key is
            set (every call then fails with ProviderNotConfigured).
        model: Transcription model name.
        language: ISO-639-1 language hint passed to the provider.
        max_bytes: Size ceiling enforced before upload.
    """

    def __init__(
        self,
        client: openai.AsyncOpenAI | None,
        model: str = "whisper-1",
        language: str | None = "en",
        max_bytes: int = PROVIDER_MAX_BYTES,
    ) -> None:
        self._client = client
        self._model = model
        self._language = language
        self._max_bytes = max_bytes

    async def transcribe(self, media: bytes, mime_hint: str) -> TranscriptionResult:
        """Transcribe a recording.

        Args:
            media: Raw audio/video container bytes.
            mime_hint: MIME type reported by the uploader.

        Returns:
            TranscriptionResult; text is never None and segments/words
            are empty lists when the provider returns none.

        Raises:
            UnsupportedMedia: mime_hint is not an accepted container.
            PayloadTooLarge: media exceeds the provider ceiling.
            ProviderNotConfigured: no client was configured.
            RateLimited, AuthFailure, ProviderUnavailable: provider failures.
        """
        if self._client is None:
            raise ProviderNotConfigured("OPENAI_API_KEY is not set; transcription unavailable")
        mime = (mime_hint or "").split(";", 1)[0].strip().lower()
        extension = MEDIA_EXTENSIONS.get(mime)
        if extension is None:
            raise UnsupportedMedia(f"Unsupported media type: {mime_hint!r}")
        if len(media) > self._max_bytes:
            raise PayloadTooLarge(
                f"Audio file too large ({len(media)} bytes). "
                f"Maximum size is {self._max_bytes // (1024 * 1024)}MB."
            )

        logger.info(
            "transcription.started",
            model=self._model,
            mime=mime,
            size_bytes=len(media),
        )

        params: dict[str, Any] = {
            "file": (f"recording.{extension}", media, mime),
            "model": self._model,
            "response_format": "verbose_json",
            "timestamp_granularities": ["word", "segment"],
        }
        if self._language:
            params["language"] = self._language

        try:
            response = await self._client.audio.transcriptions.create(**params)
        except Exception as exc:
            translated = _translate_openai_error(exc)
            if translated is None:
                raise
            logger.warning(
                "transcription.provider_error",
                error_type=type(exc).__name__,
                mapped_to=type(translated).__name__,
            )
            raise translated from exc

        result = _to_result(response)
        logger.info(
            "transcription.completed",
            duration=result.duration,
            language=result.language,
            segments=len(result.segments),
            words=len(result.words),
        )
        return result


def _to_result(response: Any) -> TranscriptionResult:
    """Normalize a verbose_json transcription response."""
    if hasattr(response, "model_dump"):
        data = response.model_dump()
    elif isinstance(response, dict):
        data = dict(response)
    else:
        data = {"text": str(response)}

    return TranscriptionResult(
        text=data.get("text") or "",
        duration=data.get("duration"),
        language=data.get("language"),
        segments=data.get("segments") or [],
        words=data.get("words") or [],
    )
