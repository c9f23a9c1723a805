"""Background download engine.

A submission is validated and recorded synchronously, then the fetch +
encode runs as an asyncio task raced against a fixed deadline. The job
record is replaced exactly once when that race settles: ``completed`` with
the file size, or ``failed`` with a message. Nothing in the background path
raises back to the caller.
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Callable, Dict, Optional, Set, Tuple

from audiograb.errors import InvalidInput, JobTimeout, VerificationFailure
from audiograb.jobs.dispatcher import JobDispatcher
from audiograb.jobs.models import JobRecord
from audiograb.jobs.store import JobStore
from audiograb.media.adapter import AUDIO_CODEC, MediaAdapter
from audiograb.media.metadata import SUPPORTED_BITRATES
from audiograb.media.sanitize import sanitize_filename
from audiograb.media.source_id import extract_video_id
from audiograb.storage.output_store import OutputStore

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = f"{AUDIO_CODEC}-{SUPPORTED_BITRATES[0]}"

_FORMAT = re.compile(r"^(?P<codec>[a-z0-9]+)-(?P<bitrate>\d+)$")


def parse_format(format_selector: Optional[str]) -> Tuple[str, int]:
    """``"mp3-320"`` -> ``("mp3-320", 320)``. Missing selector means the default."""
    selector = (format_selector or DEFAULT_FORMAT).strip().lower()
    match = _FORMAT.match(selector)
    if not match or match.group("codec") != AUDIO_CODEC:
        raise InvalidInput("Unsupported format", details=format_selector)
    bitrate = int(match.group("bitrate"))
    if bitrate not in SUPPORTED_BITRATES:
        raise InvalidInput("Unsupported bitrate", details=format_selector)
    return selector, bitrate


def build_output_name(title: str, job_id: str) -> str:
    # The id suffix keeps concurrent jobs for same-titled videos apart.
    return f"{title}-{job_id[:8]}.{AUDIO_CODEC}"


_OUTPUT_NAME = re.compile(r"^(?P<title>.+)-[0-9a-f]{8}\.(?P<ext>[a-z0-9]+)$")


def display_name(output_name: str) -> str:
    """The name offered to the browser: the output name without the id suffix."""
    match = _OUTPUT_NAME.match(output_name)
    if not match:
        return output_name
    return f"{match.group('title')}.{match.group('ext')}"


class JobEngine(JobDispatcher):
    """Creates jobs, runs them in the background and settles them in the store."""

    def __init__(
        self,
        store: JobStore,
        output_store: OutputStore,
        adapter: MediaAdapter,
        timeout_seconds: float = 300,
        default_title: str = "audio",
    ):
        self._store = store
        self._output_store = output_store
        self._adapter = adapter
        self._timeout = timeout_seconds
        self._default_title = default_title
        self._tasks: Dict[str, asyncio.Task] = {}
        # Adapter calls that lost the race against the deadline. They are not
        # awaited or cancelled, only kept referenced until they finish.
        self._abandoned: Set[asyncio.Future] = set()
        self._running = False

    @property
    def store(self) -> JobStore:
        return self._store

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False
        pending = list(self._tasks.values()) + list(self._abandoned)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._abandoned.clear()

    async def submit(
        self,
        source_url: str,
        format_selector: Optional[str] = None,
        title: Optional[str] = None,
        launch: bool = True,
    ) -> JobRecord:
        """Validate, record and (unless ``launch`` is False) start a job.

        Raises InvalidInput before anything is stored. Never waits on the
        download itself.
        """
        video_id = extract_video_id(source_url)
        selector, bitrate = parse_format(format_selector)
        safe_title = sanitize_filename(title or "", default=self._default_title)

        job_id = str(uuid.uuid4())
        job = JobRecord(
            id=job_id,
            source_url=source_url.strip(),
            video_id=video_id,
            format=selector,
            bitrate=bitrate,
            title=safe_title,
            output_name=build_output_name(safe_title, job_id),
        )
        self._store.put(job)
        logger.info(
            "Job created id=%s video=%s format=%s file=%s",
            job.id, video_id, selector, job.output_name,
        )
        if launch:
            await self.launch(job.id)
        return job

    async def launch(self, job_id: str) -> None:
        job = self._store.get(job_id)
        if job is None or job.is_terminal or job_id in self._tasks:
            return
        task = asyncio.create_task(self._run(job), name=f"download-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t, jid=job_id: self._tasks.pop(jid, None))

    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        return self._store.get(job_id)

    async def wait(self, job_id: str) -> Optional[JobRecord]:
        """Wait for a job's background work to settle and return the record.

        Cancelling the waiter does not cancel the job.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return self._store.get(job_id)

    # ------------------------------------------------------------------
    # Background path
    # ------------------------------------------------------------------

    async def _run(self, job: JobRecord) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        dest = self._output_store.output_path(job.output_name)
        try:
            error = await self._fetch(job, dest)
            if error is None:
                size = await self._verify(dest)
                self._settle(job.id, lambda rec: rec.mark_completed(size))
                logger.info(
                    "Job completed id=%s in %.2fs size=%d bytes (%.2f MB)",
                    job.id, loop.time() - started, size, size / 1024 / 1024,
                )
                return
        except VerificationFailure as exc:
            error = exc
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error in job %s", job.id)
            error = exc

        message = str(error) or type(error).__name__
        logger.error("Job failed id=%s after %.2fs: %s", job.id, loop.time() - started, message)
        self._settle(job.id, lambda rec: rec.mark_failed(message))
        await self._output_store.remove_quietly(dest)

    async def _fetch(self, job: JobRecord, dest: Path) -> Optional[BaseException]:
        """Race the adapter against the deadline. Returns the failure, if any."""
        call = asyncio.ensure_future(self._adapter.fetch_audio(job.source_url, dest, job.bitrate))
        try:
            done, _ = await asyncio.wait({call}, timeout=self._timeout)
        except asyncio.CancelledError:
            call.cancel()
            raise
        if not done:
            self._abandon(call)
            return JobTimeout(f"Download timeout after {self._timeout:g} seconds")
        if call.cancelled():
            return JobTimeout("Download was cancelled")
        return call.exception()

    async def _verify(self, dest: Path) -> int:
        try:
            size = await self._output_store.stat_size(dest)
        except OSError as exc:
            raise VerificationFailure(f"File verification failed: {exc.strerror or exc}") from exc
        if size <= 0:
            raise VerificationFailure("File verification failed: output file is empty")
        return size

    def _settle(self, job_id: str, apply: Callable[[JobRecord], None]) -> None:
        current = self._store.get(job_id)
        if current is None or current.is_terminal:
            logger.warning("Job %s already settled or gone, dropping update", job_id)
            return
        updated = current.model_copy()
        apply(updated)
        self._store.put(updated)

    def _abandon(self, call: asyncio.Future) -> None:
        self._abandoned.add(call)
        call.add_done_callback(self._abandoned_done)

    def _abandoned_done(self, call: asyncio.Future) -> None:
        self._abandoned.discard(call)
        if call.cancelled():
            return
        exc = call.exception()
        if exc is not None:
            logger.info("Timed-out download finished late with error: %s", exc)
        else:
            logger.info("Timed-out download finished late; file left for the reaper")
