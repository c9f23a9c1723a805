"""audiograb - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from audiograb.config import Settings, settings as default_settings
from audiograb.api.router import api_router, files_router_root
from audiograb.api import downloads as downloads_api
from audiograb.api import files as files_api
from audiograb.api import video_info as video_info_api
from audiograb.error_handlers import register_error_handlers
from audiograb.jobs.engine import JobEngine
from audiograb.jobs.reaper import Reaper
from audiograb.jobs.store import JobStore
from audiograb.logging_config import configure_logging
from audiograb.media.adapter import MediaAdapter, YtDlpAudioAdapter
from audiograb.media.metadata import MetadataProvider, default_providers
from audiograb.middleware_logging import register_request_logging
from audiograb.storage.output_store import OutputStore

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    app_settings: Optional[Settings] = None,
    adapter: Optional[MediaAdapter] = None,
    providers: Optional[List[MetadataProvider]] = None,
) -> FastAPI:
    cfg = app_settings or default_settings
    configure_logging(cfg.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Starting audiograb on port %s", cfg.port)
        logger.info("Downloads dir: %s", cfg.downloads_dir)
        logger.info("Download mode: %s, job timeout: %ss", cfg.download_mode, cfg.job_timeout_seconds)

        store = JobStore()
        output_store = OutputStore(cfg.downloads_dir, ttl_seconds=cfg.file_ttl_seconds)
        engine = JobEngine(
            store,
            output_store,
            adapter or YtDlpAudioAdapter(ffmpeg_location=cfg.ffmpeg_location),
            timeout_seconds=cfg.job_timeout_seconds,
            default_title=cfg.default_title,
        )
        reaper = Reaper(
            store,
            output_store,
            interval_seconds=cfg.cleanup_interval_seconds,
            job_grace_seconds=cfg.job_grace_seconds,
            stale_after_seconds=cfg.job_timeout_seconds + cfg.stale_job_slack_seconds,
        )

        await engine.start()
        await reaper.start()
        logger.info("Job engine and reaper started")

        # Wire engine, store and providers into API endpoints
        downloads_api.set_dispatcher(engine, cfg.download_mode)
        files_api.set_output_store(output_store)
        video_info_api.set_providers(providers if providers is not None else default_providers())

        app.state.job_store = store
        app.state.output_store = output_store
        app.state.engine = engine
        app.state.reaper = reaper

        yield

        logger.info("Shutting down audiograb")
        await reaper.stop()
        await engine.stop()

    app = FastAPI(
        title="audiograb",
        description="Convert online videos to downloadable MP3 files",
        version=VERSION,
        lifespan=lifespan,
    )
    register_request_logging(app)
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys([*cfg.cors_origins, cfg.frontend_url])),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {
            "message": "YouTube to MP3 Converter API",
            "status": "running",
            "version": VERSION,
            "endpoints": {
                "health": "/api/health",
                "videoInfo": "POST /api/video-info",
                "download": "POST /api/download",
                "status": "GET /api/download/status/{jobId}",
                "files": "GET /downloads/{filename}",
            },
        }

    app.include_router(api_router)
    app.include_router(files_router_root)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("audiograb.main:app", host="0.0.0.0", port=default_settings.port)
