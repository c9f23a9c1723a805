"""Video metadata endpoint."""

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from audiograb.media.metadata import MetadataProvider, default_providers, resolve_metadata
from audiograb.media.source_id import extract_video_id

router = APIRouter()

# Set by main.py during lifespan (same pattern as downloads.py)
_providers: Optional[List[MetadataProvider]] = None


def set_providers(providers: List[MetadataProvider]):
    global _providers
    _providers = providers


class VideoInfoRequest(BaseModel):
    url: Optional[str] = None


@router.post("/video-info")
async def video_info(request: VideoInfoRequest):
    """Resolve title, author, duration and the selectable audio formats.

    400 for a missing or unrecognised URL, 404 when no provider knows the video.
    """
    video_id = extract_video_id(request.url or "")
    providers = _providers if _providers is not None else default_providers()
    info = await resolve_metadata(video_id, providers)
    return {
        "success": True,
        "data": info.model_dump(by_alias=True, exclude_none=True),
    }
