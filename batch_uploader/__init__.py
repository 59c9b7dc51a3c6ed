"""
batch_uploader - push a batch of local files to pre-signed URLs.

Bounded concurrency, per-file retries and one aggregated progress counter.

Usage:
    from batch_uploader import UploadDescriptor, upload_files

    files = [
        UploadDescriptor(
            path=Path("build/app.js"),
            url="https://bucket.s3.amazonaws.com/app.js?X-Amz-Signature=...",
            content_type="text/javascript",
            content_length=1024,
        ),
    ]
    await upload_files(files, on_progress=lambda total: print(total))

    # With an explicit transport, signal and configuration
    signal = CancellationSignal()
    async with HTTPTransport() as transport:
        async with UploadOrchestrator(transport, signal, UploadConfig(retries=3)) as uploader:
            await uploader.upload(files, on_progress)
"""
from .errors import UploadAbortedError, UploadError, UploadExhaustedError, UploadFailedError
from .models import FileState, TransportResponse, UploadConfig, UploadDescriptor
from .orchestrator import UploadOrchestrator, upload_files
from .retry import RetryDecision, RetryExhausted, RetryPolicy
from .services import HTTPTransport, ManifestError, ProgressStream, load_manifest
from .utils import CancellationSignal, FileProgress, ProgressAggregator

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "upload_files",
    # Models
    "UploadDescriptor",
    "UploadConfig",
    "FileState",
    "TransportResponse",
    "FileProgress",
    # Errors
    "UploadError",
    "UploadFailedError",
    "UploadAbortedError",
    "UploadExhaustedError",
    "ManifestError",
    # Retry
    "RetryPolicy",
    "RetryDecision",
    "RetryExhausted",
    # Services
    "HTTPTransport",
    "ProgressStream",
    "ProgressAggregator",
    "CancellationSignal",
    "load_manifest",
]
