"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Optional

from audiograb.jobs.models import JobRecord


class JobDispatcher(ABC):
    """Abstract interface for accepting download jobs and reporting on them."""

    @abstractmethod
    async def submit(
        self,
        source_url: str,
        format_selector: Optional[str] = None,
        title: Optional[str] = None,
        launch: bool = True,
    ) -> JobRecord:
        """Validate and record a job. Returns the record in its initial state."""
        ...

    @abstractmethod
    async def launch(self, job_id: str) -> None:
        """Start the background work for a job that was submitted unlaunched."""
        ...

    @abstractmethod
    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        """Get current status of a job."""
        ...

    @abstractmethod
    async def wait(self, job_id: str) -> Optional[JobRecord]:
        """Block until a job is terminal and return its final record."""
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher, cancelling work still in flight."""
        ...
