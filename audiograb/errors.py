"""Error taxonomy shared by the job engine and the HTTP surface."""

from typing import Optional


class AudioGrabError(Exception):
    """Base class. ``status_code`` is what the HTTP layer answers with."""

    status_code = 500
    error = "Request failed"

    def __init__(self, message: str = "", details: Optional[str] = None):
        super().__init__(message or self.error)
        self.details = details

    @property
    def message(self) -> str:
        return str(self)


class InvalidInput(AudioGrabError):
    status_code = 400
    error = "Invalid input"


class NotFound(AudioGrabError):
    status_code = 404
    error = "Not found"


class JobNotFound(NotFound):
    error = "Job not found"


class MediaNotFound(NotFound):
    error = "Video not found"


# The three below end up on a failed job record. They only reach an HTTP
# client through the synchronous download variant.

class AdapterFailure(AudioGrabError):
    error = "Download failed"


class JobTimeout(AudioGrabError):
    error = "Download timed out"


class VerificationFailure(AudioGrabError):
    error = "File verification failed"


class MetadataFailure(AudioGrabError):
    """A metadata provider errored (network, extractor breakage), as opposed
    to every provider answering that the video does not exist."""

    error = "Failed to get video information"
