from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
import threading
import logging

from ..models import FileState
logger = logging.getLogger(__name__)


@dataclass
class FileProgress:
    """Progress of the current attempt for a single file."""
    file_path: Path
    total_bytes: int = 0
    bytes_uploaded: int = 0
    attempt: int = 0
    state: FileState = FileState.PENDING

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0 if self.state == FileState.SUCCEEDED else 0.0
        return (self.bytes_uploaded / self.total_bytes) * 100


class EventEmitter:
    """Simple synchronous event emitter for stream and upload events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    def emit(self, event_name: str, *args, **kwargs):
        """Call every listener of ``event_name`` in subscription order."""
        for callback in self._listeners.get(event_name, [])[:]:  # Copy list to avoid modification during iteration
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")


class ProgressAggregator:
    """
    Running byte total across all files of a batch.

    ``total`` always equals the sum of every tracked file's
    ``bytes_uploaded``. Each change and the callback it triggers happen
    under one lock, so callers observe totals in the order they were made.
    """

    def __init__(self, on_progress: Optional[Callable[[int], None]] = None):
        self._on_progress = on_progress
        self._lock = threading.Lock()
        self._total = 0
        self._files: List[FileProgress] = []

    @property
    def total(self) -> int:
        return self._total

    @property
    def files(self) -> List[FileProgress]:
        return list(self._files)

    def track(self, file_path: Path, total_bytes: int) -> FileProgress:
        progress = FileProgress(file_path=file_path, total_bytes=total_bytes)
        with self._lock:
            self._files.append(progress)
        return progress

    def add(self, progress: FileProgress, delta: int) -> int:
        """Count ``delta`` new bytes for ``progress`` and report the new total."""
        with self._lock:
            progress.bytes_uploaded += delta
            self._total += delta
            total = self._total
            self._notify(total)
        return total

    def rollback(self, progress: FileProgress) -> int:
        """Drop the bytes of an abandoned attempt and report the corrected total."""
        with self._lock:
            self._total -= progress.bytes_uploaded
            progress.bytes_uploaded = 0
            total = self._total
            self._notify(total)
        return total

    def _notify(self, total: int) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(total)
        except Exception as e:
            logger.error(f"Error in progress callback: {e}")
