"""Error types raised by batch_uploader."""
from typing import Any, Optional

from .models import TransportResponse, UploadDescriptor


class UploadError(RuntimeError):
    """Base class for upload failures."""


class UploadFailedError(UploadError):
    """Raised when the destination answers a PUT with a non-success status."""

    def __init__(self, descriptor: UploadDescriptor, response: TransportResponse):
        super().__init__(f"Uploading '{descriptor.path}' failed: {response}")
        self.descriptor = descriptor
        self.response = response


class UploadAbortedError(UploadError):
    """Raised when the cancellation signal fires without an Exception reason."""

    def __init__(self, reason: Optional[Any] = None):
        super().__init__((str(reason) if reason is not None else "") or "Aborted")
        self.reason = reason


class UploadExhaustedError(UploadError):
    """Raised when a file runs out of retries."""

    def __init__(self, descriptor: UploadDescriptor, attempts: int):
        super().__init__(f"Uploading '{descriptor.path}' failed after {attempts} attempt(s)")
        self.descriptor = descriptor
        self.attempts = attempts
