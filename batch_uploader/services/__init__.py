"""Services for batch_uploader."""
from .manifest import ManifestError, load_manifest
from .progress_stream import ProgressStream
from .transport import HTTPTransport

__all__ = [
    "HTTPTransport",
    "ManifestError",
    "ProgressStream",
    "load_manifest",
]
