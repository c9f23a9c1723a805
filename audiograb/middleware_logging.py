"""Access log for the HTTP surface.

Download routes tag the request with the job they created or looked up, so
every line about a job can be grepped by its id. Status polls arrive about
once a second per open browser tab and are logged at DEBUG.
"""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("audiograb.request")

STATUS_POLL_PREFIX = "/api/download/status/"


def tag_job(request: Request, job_id: str) -> None:
    request.state.job_id = job_id


def _job_id(request: Request) -> Optional[str]:
    return getattr(request.state, "job_id", None)


class JobAccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s -> 500 job=%s elapsed=%.1fms (unhandled)",
                request.method, request.url.path, _job_id(request) or "-",
                (time.perf_counter() - started) * 1000.0,
            )
            raise

        level = logging.DEBUG if request.url.path.startswith(STATUS_POLL_PREFIX) else logging.INFO
        logger.log(
            level,
            "%s %s -> %s job=%s elapsed=%.1fms",
            request.method, request.url.path, response.status_code, _job_id(request) or "-",
            (time.perf_counter() - started) * 1000.0,
        )
        return response


def register_request_logging(app: FastAPI) -> None:
    app.add_middleware(JobAccessLogMiddleware)
