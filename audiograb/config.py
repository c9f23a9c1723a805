"""Application configuration via environment variables."""

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    port: int = 5000
    frontend_url: str = "http://localhost:5173"
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:5174",
        ]
    )
    log_level: str = "INFO"

    # Output storage
    downloads_dir: str = "./downloads"

    # Job processing
    download_mode: Literal["async", "sync"] = "async"
    job_timeout_seconds: float = 300
    default_title: str = "audio"

    # Reaper
    cleanup_interval_seconds: float = 30 * 60
    file_ttl_seconds: float = 60 * 60
    job_grace_seconds: float = 0
    # Processing records older than the job timeout plus this are failed
    stale_job_slack_seconds: float = 60

    # Media tooling
    ffmpeg_location: Optional[str] = None
    oembed_timeout_seconds: float = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
