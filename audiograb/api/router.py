"""Aggregate all API routers."""

from fastapi import APIRouter
from audiograb.api.health import router as health_router
from audiograb.api.video_info import router as video_info_router
from audiograb.api.downloads import router as downloads_router
from audiograb.api.files import router as files_router

api_router = APIRouter(prefix="/api")
api_router.include_router(health_router, tags=["health"])
api_router.include_router(video_info_router, tags=["video-info"])
api_router.include_router(downloads_router, tags=["downloads"])

# Output files are served at the root: /downloads/{filename}
files_router_root = APIRouter()
files_router_root.include_router(files_router, tags=["files"])
