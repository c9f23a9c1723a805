"""In-memory job store, the single source of truth for job state."""

import threading
from typing import Dict, List, Optional

from audiograb.jobs.models import JobRecord


class JobStore:
    """Maps job id to record.

    Owned by the application lifespan and handed to the engine, the reaper
    and the status route. Every operation is a single dict access under a
    lock, so readers on the event loop and writers in executor threads
    never see a half-applied change.
    """

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def put(self, job: JobRecord) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def list(self) -> List[JobRecord]:
        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs
