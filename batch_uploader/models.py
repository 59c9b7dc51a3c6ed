"""
Models for batch_uploader.

Immutable dataclasses for upload inputs and configuration.
"""
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 5
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_RETRY_MAX_DELAY = 30.0


class FileState(Enum):
    """Lifecycle of a single file inside one upload call."""
    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRY_WAIT = "retry_wait"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (FileState.SUCCEEDED, FileState.CANCELLED, FileState.EXHAUSTED)


@dataclass(frozen=True)
class UploadDescriptor:
    """Immutable description of one file and its pre-signed destination."""
    path: Path
    url: str
    content_type: str
    content_length: int

    def __post_init__(self):
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))
        if isinstance(self.content_length, bool) or not isinstance(self.content_length, int):
            raise ValueError(f"content_length must be an integer, got {self.content_length!r}")
        if self.content_length < 0:
            raise ValueError(f"content_length must be non-negative, got {self.content_length}")

    @property
    def headers(self) -> Dict[str, str]:
        """Headers sent with the PUT request."""
        return {
            "content-type": self.content_type,
            "content-length": str(self.content_length),
            "cache-control": "max-age=31536000",
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "UploadDescriptor":
        """
        Build a descriptor from a manifest entry.

        Accepts camelCase (``contentType``) and snake_case (``content_type``)
        keys. A missing content length is taken from the file size.
        """
        path = Path(data["path"])
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path

        content_type = data.get("contentType", data.get("content_type"))
        if not content_type:
            content_type = "application/octet-stream"

        content_length = data.get("contentLength", data.get("content_length"))
        if content_length is None:
            content_length = path.stat().st_size

        return cls(
            path=path,
            url=data["url"],
            content_type=content_type,
            content_length=content_length,
        )


@dataclass(frozen=True)
class TransportResponse:
    """Outcome of a single transport call."""
    ok: bool
    status_code: int = 0
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.status_code} {self.reason}".strip()


def _env_number(name: str, default: Union[int, float], cast=int, minimum: Union[int, float] = 0):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} must be >= {minimum}, got {value}, using {default}")
        return default
    return value


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for batch uploads."""
    retries: int = DEFAULT_RETRIES
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY
    retry_factor: float = 2.0
    retry_jitter: float = 0.5  # fraction of the delay
    chunk_size: int = 64 * 1024
    cancel_on_failure: bool = False

    def __post_init__(self):
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

    @classmethod
    def from_env(cls, **overrides) -> "UploadConfig":
        """
        Build configuration from ``UPLOADER_*`` environment variables.

        Keyword overrides that are not None win over the environment.
        """
        values = {
            "retries": _env_number("UPLOADER_RETRIES", DEFAULT_RETRIES),
            "max_concurrency": _env_number(
                "UPLOADER_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY, minimum=1
            ),
            "retry_base_delay": _env_number(
                "UPLOADER_RETRY_BASE_DELAY", DEFAULT_RETRY_BASE_DELAY, cast=float
            ),
            "retry_max_delay": _env_number(
                "UPLOADER_RETRY_MAX_DELAY", DEFAULT_RETRY_MAX_DELAY, cast=float
            ),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
