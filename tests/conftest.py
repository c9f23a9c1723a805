import asyncio
import time
from contextlib import ExitStack
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from audiograb.config import Settings
from audiograb.main import create_app
from audiograb.media.adapter import MediaAdapter
from audiograb.media.metadata import MetadataProvider, VideoInfo


class FakeAdapter(MediaAdapter):
    """Stands in for yt-dlp + ffmpeg.

    Writes ``size`` bytes after ``delay`` seconds, or raises ``error`` (after
    writing ``partial`` bytes), or never returns when ``hang`` is set.
    """

    def __init__(self, size=1000, delay=0.0, error=None, partial=0, hang=False):
        self.size = size
        self.delay = delay
        self.error = error
        self.partial = partial
        self.hang = hang
        self.calls = []

    async def fetch_audio(self, source_url, dest_path, bitrate):
        self.calls.append((source_url, Path(dest_path), bitrate))
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.partial:
            Path(dest_path).write_bytes(b"\x00" * self.partial)
        if self.error is not None:
            raise self.error
        if self.size is not None:
            Path(dest_path).write_bytes(b"\xff" * self.size)


class FakeProvider(MetadataProvider):
    def __init__(self, name, title=None, error=None):
        self.name = name
        self.title = title
        self.error = error
        self.calls = 0

    def fetch(self, video_id):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.title is None:
            return None
        return VideoInfo(
            id=video_id,
            title=self.title,
            thumbnail=f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg",
            duration="212",
            author="Someone",
            views=42,
            provider=self.name,
        )


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "downloads_dir": str(tmp_path / "downloads"),
        "job_timeout_seconds": 5,
        "cleanup_interval_seconds": 3600,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def downloads_dir(tmp_path) -> Path:
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture()
def make_client(tmp_path):
    """Factory: make_client(adapter=..., providers=..., **settings_overrides)."""
    with ExitStack() as stack:
        def _make(adapter=None, providers=None, **overrides):
            app = create_app(
                make_settings(tmp_path, **overrides),
                adapter=adapter if adapter is not None else FakeAdapter(),
                providers=providers if providers is not None else [FakeProvider("fake", title="A Song")],
            )
            return stack.enter_context(TestClient(app))

        yield _make


def poll_until_settled(client, job_id, timeout=5.0, interval=0.02):
    """Poll the status endpoint until the job leaves ``processing``."""
    deadline = time.monotonic() + timeout
    while True:
        resp = client.get(f"/api/download/status/{job_id}")
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        if data["status"] != "processing" or time.monotonic() > deadline:
            return data
        time.sleep(interval)
