"""Fetch + transcode adapter.

The job engine only knows the ``MediaAdapter`` interface: given a source URL,
a destination path and a bitrate, produce an encoded audio file at that path
or raise. The yt-dlp implementation does the fetch and hands the transcode
to ffmpeg through its FFmpegExtractAudio post-processor.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import yt_dlp

from audiograb.errors import AdapterFailure

logger = logging.getLogger(__name__)

AUDIO_CODEC = "mp3"

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-us,en;q=0.5",
}


class MediaAdapter(ABC):
    """Interface for the external fetch/encode capability."""

    @abstractmethod
    async def fetch_audio(self, source_url: str, dest_path: Path, bitrate: int) -> None:
        """Write the encoded audio track of ``source_url`` to ``dest_path``."""
        ...


class YtDlpAudioAdapter(MediaAdapter):
    """Runs yt-dlp in the default executor so the event loop stays free."""

    def __init__(self, ffmpeg_location: Optional[str] = None):
        self._ffmpeg_location = ffmpeg_location

    def build_options(self, dest_path: Path, bitrate: int) -> Dict[str, Any]:
        # yt-dlp picks the container extension itself; the post-processor
        # then writes <stem>.mp3 next to it, which is dest_path.
        opts: Dict[str, Any] = {
            "format": "bestaudio/best",
            "outtmpl": str(dest_path.with_suffix("")) + ".%(ext)s",
            "noplaylist": True,
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "nocheckcertificate": True,
            "http_headers": dict(_BROWSER_HEADERS),
            "logger": logging.getLogger("audiograb.media.ytdlp"),
            "postprocessors": [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": AUDIO_CODEC,
                    "preferredquality": str(bitrate),
                }
            ],
        }
        if self._ffmpeg_location:
            opts["ffmpeg_location"] = self._ffmpeg_location
        return opts

    def _download(self, source_url: str, dest_path: Path, bitrate: int) -> None:
        opts = self.build_options(dest_path, bitrate)
        logger.info("yt-dlp download url=%s output=%s bitrate=%s", source_url, dest_path, bitrate)
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                retcode = ydl.download([source_url])
        except yt_dlp.utils.DownloadError as exc:
            raise AdapterFailure(str(exc).removeprefix("ERROR: ")) from exc
        if retcode:
            raise AdapterFailure(f"yt-dlp exited with status {retcode}")

    async def fetch_audio(self, source_url: str, dest_path: Path, bitrate: int) -> None:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._download, source_url, dest_path, bitrate)
