"""Tests for local-disk MediaStorage."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.meetflow.meetings.storage import MediaStorage


async def test_store_writes_bytes_under_folder(tmp_path: Path):
    storage = MediaStorage(root=tmp_path)

    stored = await storage.store(b"RIFF....WAVE", "standup.wav", folder="meetings")

    path = tmp_path / stored.locator
    assert path.read_bytes() == b"RIFF....WAVE"
    assert stored.locator.startswith("meetings/")
    assert stored.locator.endswith("-standup.wav")
    assert stored.access_url == path.resolve().as_uri()


async def test_same_filename_does_not_overwrite(tmp_path: Path):
    storage = MediaStorage(root=tmp_path)

    first = await storage.store(b"one", "call.mp3")
    second = await storage.store(b"two", "call.mp3")

    assert first.locator != second.locator
    assert (tmp_path / first.locator).read_bytes() == b"one"


async def test_unsafe_filename_is_sanitized(tmp_path: Path):
    storage = MediaStorage(root=tmp_path)

    stored = await storage.store(b"x", "../../etc/pass wd.mp3", folder="meetings")

    assert ".." not in stored.locator
    assert stored.locator.endswith("-pass_wd.mp3")
    assert (tmp_path / stored.locator).exists()


async def test_folder_outside_root_is_rejected(tmp_path: Path):
    storage = MediaStorage(root=tmp_path / "media")

    with pytest.raises(ValueError):
        await storage.store(b"x", "call.mp3", folder="../elsewhere")
