"""Job record data model for background downloads."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class JobRecord(BaseModel):
    """Tracks one fetch + encode job from submission to its single settlement."""
    id: str
    source_url: str
    video_id: str
    format: str
    bitrate: int
    title: str
    output_name: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = 0
    download_location: Optional[str] = None
    size_bytes: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def mark_completed(self, size_bytes: int) -> None:
        self.status = JobStatus.COMPLETED
        self.progress = 100
        self.size_bytes = size_bytes
        self.download_location = f"/downloads/{quote(self.output_name)}"
        self.error = None
        self.finished_at = _utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.progress = 0
        self.error = error
        self.download_location = None
        self.size_bytes = None
        self.finished_at = _utcnow()

    def to_api(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "jobId": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "filename": self.output_name,
            "videoTitle": self.title,
            "format": self.format,
            "createdAt": self.created_at.isoformat(),
        }
        if self.status == JobStatus.COMPLETED:
            payload["downloadUrl"] = self.download_location
            payload["size"] = self.size_bytes
        if self.status == JobStatus.FAILED:
            payload["error"] = self.error
        if self.finished_at:
            payload["finishedAt"] = self.finished_at.isoformat()
        return payload
