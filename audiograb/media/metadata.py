"""Video metadata lookup with an ordered list of providers.

Providers are tried in sequence; the first one that answers wins and tags
the result with its name. yt-dlp gives the full picture (duration, views),
the oEmbed endpoint is a lighter fallback that only knows title and author.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import requests
import yt_dlp
from pydantic import BaseModel, Field

from audiograb.config import settings
from audiograb.errors import MediaNotFound, MetadataFailure
from audiograb.media.source_id import thumbnail_url

logger = logging.getLogger(__name__)

OEMBED_URL = "https://www.youtube.com/oembed"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class AudioFormat(BaseModel):
    id: str
    label: str
    quality: str
    type: str = "audio"


SUPPORTED_BITRATES = (320, 256, 128)

AUDIO_FORMATS: List[AudioFormat] = [
    AudioFormat(id=f"mp3-{kbps}", label=f"MP3 {kbps}kbps", quality=f"{kbps}kbps")
    for kbps in SUPPORTED_BITRATES
]


class VideoInfo(BaseModel):
    id: str
    title: str
    thumbnail: str
    duration: Optional[str] = None
    author: Optional[str] = None
    views: Optional[int] = None
    upload_date: Optional[str] = Field(default=None, serialization_alias="uploadDate")
    formats: List[AudioFormat] = Field(default_factory=lambda: list(AUDIO_FORMATS))
    provider: str


class MetadataProvider(ABC):
    """One way of turning a video id into metadata."""

    name: str = "provider"

    @abstractmethod
    def fetch(self, video_id: str) -> Optional[VideoInfo]:
        """Return metadata, None if the video is unknown, raise on failure."""
        ...


# yt-dlp reports unknown or removed videos as download errors
_MISSING_VIDEO = re.compile(r"video unavailable|private video|does not exist|has been removed", re.IGNORECASE)


class YtDlpMetadataProvider(MetadataProvider):
    name = "yt-dlp"

    def fetch(self, video_id: str) -> Optional[VideoInfo]:
        opts = {"quiet": True, "no_warnings": True, "skip_download": True, "noplaylist": True}
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        except yt_dlp.utils.DownloadError as exc:
            if _MISSING_VIDEO.search(str(exc)):
                return None
            raise
        if not info:
            return None
        duration = info.get("duration")
        return VideoInfo(
            id=video_id,
            title=info.get("title") or video_id,
            thumbnail=thumbnail_url(video_id),
            duration=str(int(duration)) if duration is not None else None,
            author=info.get("uploader") or info.get("channel"),
            views=info.get("view_count"),
            upload_date=info.get("upload_date"),
            provider=self.name,
        )


class OEmbedMetadataProvider(MetadataProvider):
    name = "oembed"

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout if timeout is not None else settings.oembed_timeout_seconds

    def fetch(self, video_id: str) -> Optional[VideoInfo]:
        response = requests.get(
            OEMBED_URL,
            params={"url": WATCH_URL.format(video_id=video_id), "format": "json"},
            timeout=self._timeout,
        )
        if response.status_code in (400, 401, 403, 404):
            return None
        response.raise_for_status()
        data = response.json()
        return VideoInfo(
            id=video_id,
            title=data.get("title") or video_id,
            thumbnail=thumbnail_url(video_id),
            author=data.get("author_name"),
            provider=self.name,
        )


def default_providers() -> List[MetadataProvider]:
    return [YtDlpMetadataProvider(), OEmbedMetadataProvider()]


async def resolve_metadata(
    video_id: str,
    providers: Optional[Sequence[MetadataProvider]] = None,
) -> VideoInfo:
    """Try each provider in order.

    Raises MediaNotFound when every provider reports the video as unknown,
    MetadataFailure when at least one of them errored instead.
    """
    providers = providers if providers is not None else default_providers()
    errors = []
    failed = False
    for provider in providers:
        try:
            info = await asyncio.to_thread(provider.fetch, video_id)
        except Exception as exc:
            logger.warning("Metadata provider %s failed for %s: %s", provider.name, video_id, exc)
            errors.append(f"{provider.name}: {exc}")
            failed = True
            continue
        if info is not None:
            return info
        errors.append(f"{provider.name}: not found")
    details = "; ".join(errors) or None
    if failed:
        raise MetadataFailure("Failed to get video information", details=details)
    raise MediaNotFound("Video not found", details=details)
