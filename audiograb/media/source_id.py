"""Extract the video id from the various URL shapes the site hands out."""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from audiograb.errors import InvalidInput

VIDEO_ID_LENGTH = 11

_VIDEO_ID = re.compile(r"^[A-Za-z0-9_-]{%d}$" % VIDEO_ID_LENGTH)

_YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
}
_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_PATH_PREFIXES = ("embed", "v", "e", "shorts", "live")

# Looser match used when the URL does not parse cleanly (missing scheme,
# extra path segments, odd query ordering).
_FALLBACK = re.compile(
    r"(?:youtube(?:-nocookie)?\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)"
    r"([A-Za-z0-9_-]{%d})(?![A-Za-z0-9_-])" % VIDEO_ID_LENGTH
)


def _valid(candidate: Optional[str]) -> Optional[str]:
    if candidate and _VIDEO_ID.match(candidate):
        return candidate
    return None


def parse_video_id(url: str) -> Optional[str]:
    """Strict parser: only well-formed http(s) URLs on known hosts."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        return None
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]

    if host in _SHORT_HOSTS:
        return _valid(segments[0]) if segments else None

    if host not in _YOUTUBE_HOSTS:
        return None

    if segments[:1] == ["watch"]:
        return _valid(parse_qs(parsed.query).get("v", [None])[0])
    if len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
        return _valid(segments[1])
    return None


def match_video_id(url: str) -> Optional[str]:
    match = _FALLBACK.search(url)
    return match.group(1) if match else None


def extract_video_id(url: str) -> str:
    """Return the 11 character video id for ``url`` or raise InvalidInput."""
    if not url or not url.strip():
        raise InvalidInput("YouTube URL is required")
    video_id = parse_video_id(url) or match_video_id(url)
    if video_id is None:
        raise InvalidInput("Invalid YouTube URL", details=url)
    return video_id


def thumbnail_url(video_id: str) -> str:
    return f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg"
