"""Tests for TranscriptionAdapter.

The OpenAI client is a MagicMock; SDK exceptions are constructed with
real httpx request/response objects so status-code mapping is exercised
as in production.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from src.meetflow.meetings.errors import (
    AuthFailure,
    PayloadTooLarge,
    ProviderNotConfigured,
    ProviderUnavailable,
    RateLimited,
    UnsupportedMedia,
)
from src.meetflow.meetings.transcription import (
    SUPPORTED_MEDIA_TYPES,
    TranscriptionAdapter,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")


def _status_error(cls, status_code: int, message: str = "error"):
    return cls(message, response=httpx.Response(status_code, request=_REQUEST), body=None)


def _make_client(response=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(
        return_value=response, side_effect=side_effect
    )
    return client


def _verbose_response(**overrides) -> MagicMock:
    data = {
        "text": "Alice will send the report by Friday.",
        "duration": 3.5,
        "language": "english",
        "segments": [
            {"id": 0, "start": 0.0, "end": 3.5, "text": "Alice will send the report by Friday."}
        ],
        "words": [
            {"word": "Alice", "start": 0.0, "end": 0.4},
            {"word": "will", "start": 0.4, "end": 0.6},
        ],
    }
    data.update(overrides)
    response = MagicMock()
    response.model_dump.return_value = data
    return response


# ── Happy Path ───────────────────────────────────────────────────────────────


async def test_transcribe_returns_time_aligned_result():
    client = _make_client(response=_verbose_response())
    adapter = TranscriptionAdapter(client=client)

    result = await adapter.transcribe(b"fake-mp3", "audio/mpeg")

    assert result.text == "Alice will send the report by Friday."
    assert result.duration == 3.5
    assert len(result.segments) == 1
    assert result.segments[0].end == 3.5
    assert [w.word for w in result.words] == ["Alice", "will"]


async def test_transcribe_requests_verbose_json_with_word_timestamps():
    client = _make_client(response=_verbose_response())
    adapter = TranscriptionAdapter(client=client, model="whisper-1", language="en")

    await adapter.transcribe(b"fake-wav", "audio/wav; codecs=1")

    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["response_format"] == "verbose_json"
    assert kwargs["timestamp_granularities"] == ["word", "segment"]
    assert kwargs["language"] == "en"
    assert kwargs["file"] == ("recording.wav", b"fake-wav", "audio/wav")


async def test_silent_media_yields_empty_lists_not_none():
    client = _make_client(
        response=_verbose_response(text=None, segments=None, words=None)
    )
    adapter = TranscriptionAdapter(client=client)

    result = await adapter.transcribe(b"silence", "video/mp4")

    assert result.text == ""
    assert result.segments == []
    assert result.words == []


def test_supported_media_types_cover_upload_list():
    assert {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/m4a",
        "audio/ogg",
        "video/mp4",
        "video/mpeg",
        "video/quicktime",
        "video/x-msvideo",
    } == set(SUPPORTED_MEDIA_TYPES)


# ── Input Rejection ──────────────────────────────────────────────────────────


async def test_unsupported_media_is_rejected_before_upload():
    client = _make_client(response=_verbose_response())
    adapter = TranscriptionAdapter(client=client)

    with pytest.raises(UnsupportedMedia):
        await adapter.transcribe(b"%PDF", "application/pdf")

    client.audio.transcriptions.create.assert_not_called()


async def test_oversized_media_is_rejected_before_upload():
    client = _make_client(response=_verbose_response())
    adapter = TranscriptionAdapter(client=client, max_bytes=10)

    with pytest.raises(PayloadTooLarge):
        await adapter.transcribe(b"x" * 11, "audio/mpeg")

    client.audio.transcriptions.create.assert_not_called()


async def test_missing_client_is_a_configuration_error():
    adapter = TranscriptionAdapter(client=None)

    with pytest.raises(ProviderNotConfigured):
        await adapter.transcribe(b"audio", "audio/mpeg")


# ── Provider Error Mapping ───────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (_status_error(openai.RateLimitError, 429), RateLimited),
        (_status_error(openai.AuthenticationError, 401), AuthFailure),
        (_status_error(openai.APIStatusError, 413), PayloadTooLarge),
        (_status_error(openai.BadRequestError, 400), UnsupportedMedia),
        (_status_error(openai.InternalServerError, 503), ProviderUnavailable),
        (openai.APIConnectionError(request=_REQUEST), ProviderUnavailable),
    ],
)
async def test_provider_errors_are_translated(exc, expected):
    adapter = TranscriptionAdapter(client=_make_client(side_effect=exc))

    with pytest.raises(expected) as info:
        await adapter.transcribe(b"audio", "audio/mpeg")

    assert info.value.__cause__ is exc


async def test_unrecognized_errors_propagate_unchanged():
    boom = RuntimeError("socket exploded")
    adapter = TranscriptionAdapter(client=_make_client(side_effect=boom))

    with pytest.raises(RuntimeError, match="socket exploded"):
        await adapter.transcribe(b"audio", "audio/mpeg")
