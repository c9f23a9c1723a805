"""Download API: submit a conversion job and poll its status."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from pydantic import BaseModel

from audiograb.errors import AdapterFailure, JobNotFound
from audiograb.jobs.dispatcher import JobDispatcher
from audiograb.jobs.models import JobStatus
from audiograb.middleware_logging import tag_job

router = APIRouter()

# These will be set by main.py during lifespan
_dispatcher: Optional[JobDispatcher] = None
_download_mode = "async"


def set_dispatcher(dispatcher: JobDispatcher, download_mode: str = "async"):
    global _dispatcher, _download_mode
    _dispatcher = dispatcher
    _download_mode = download_mode


class DownloadRequest(BaseModel):
    url: Optional[str] = None
    format: Optional[str] = None
    title: Optional[str] = None


@router.post("/download")
async def submit_download(
    body: DownloadRequest,
    request: Request,
    background: BackgroundTasks,
    wait: Optional[bool] = None,
):
    """Start converting a video's audio track.

    Async mode (default) answers at once with a job id; the work starts only
    after the response has been sent. Sync mode, or ``?wait=true``, holds the
    request until the file is ready.
    """
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")

    synchronous = wait if wait is not None else _download_mode == "sync"

    if not synchronous:
        job = await _dispatcher.submit(body.url or "", body.format, body.title, launch=False)
        tag_job(request, job.id)
        background.add_task(_dispatcher.launch, job.id)
        return {
            "success": True,
            "data": {"jobId": job.id, "status": job.status.value},
        }

    job = await _dispatcher.submit(body.url or "", body.format, body.title)
    tag_job(request, job.id)
    settled = await _dispatcher.wait(job.id) or job
    if settled.status != JobStatus.COMPLETED:
        raise AdapterFailure("Download failed", details=settled.error)
    return {
        "success": True,
        "data": {
            "jobId": settled.id,
            "downloadUrl": settled.download_location,
            "filename": settled.output_name,
            "size": settled.size_bytes,
        },
    }


@router.get("/download/status/{job_id}")
async def get_download_status(job_id: str, request: Request):
    """Current state of a job. 404 once the reaper has removed it."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")

    tag_job(request, job_id)
    job = await _dispatcher.get_status(job_id)
    if job is None:
        raise JobNotFound("Job not found")
    return {"success": True, "data": job.to_api()}
