"""Periodic cleanup of finished job records and aged output files.

Runs as an asyncio background task: one sweep at startup, then one every
interval. The two sweeps are independent; an error in one does not stop the
other or the loop. Records stuck in processing well past the job timeout
are failed so that clients polling them get an answer.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from audiograb.jobs.models import JobRecord
from audiograb.jobs.store import JobStore
from audiograb.storage.output_store import OutputStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    files_removed: int = 0
    jobs_removed: int = 0


class Reaper:
    """Deletes terminal job records and output files past their TTL."""

    def __init__(
        self,
        store: JobStore,
        output_store: OutputStore,
        interval_seconds: float = 30 * 60,
        job_grace_seconds: float = 0,
        stale_after_seconds: Optional[float] = None,
    ):
        self._store = store
        self._output_store = output_store
        self._interval = interval_seconds
        self._job_grace = timedelta(seconds=job_grace_seconds)
        self._stale_after = timedelta(seconds=stale_after_seconds) if stale_after_seconds else None
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="reaper")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Reaper sweep failed")
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break

    async def sweep(self) -> SweepResult:
        result = SweepResult()
        try:
            result.files_removed = await asyncio.to_thread(self._output_store.cleanup_expired)
        except Exception:
            logger.exception("File sweep failed")
        result.jobs_removed = self.sweep_jobs()
        if result.files_removed or result.jobs_removed:
            logger.info(
                "Cleanup removed %d file(s) and %d job record(s)",
                result.files_removed, result.jobs_removed,
            )
        return result

    def sweep_jobs(self, now: Optional[datetime] = None) -> int:
        """Delete every terminal record that finished at least the grace period ago.

        A record still processing past ``stale_after_seconds`` never got its
        background task (the submit response failed to send, or the process
        lost it). It is failed here so pollers see an answer, and removed by a
        later sweep like any other terminal record.
        """
        now = now or datetime.now(timezone.utc)
        removed = 0
        for job in self._store.list():
            if not job.is_terminal:
                self._expire_if_stale(job, now)
                continue
            if self._job_grace and job.finished_at and now - job.finished_at < self._job_grace:
                continue
            if self._store.delete(job.id):
                removed += 1
        return removed

    def _expire_if_stale(self, job: JobRecord, now: datetime) -> None:
        if self._stale_after is None or now - job.created_at < self._stale_after:
            return
        current = self._store.get(job.id)
        if current is None or current.is_terminal:
            return
        expired = current.model_copy()
        expired.mark_failed(f"Job expired after {self._stale_after.total_seconds():g} seconds without finishing")
        self._store.put(expired)
        logger.warning("Expired stuck job id=%s created_at=%s", job.id, job.created_at.isoformat())
