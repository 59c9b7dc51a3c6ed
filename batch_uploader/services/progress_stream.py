"""
Progress Stream - Single Responsibility: read a file as an async byte stream
and report how many bytes went through.
"""
import asyncio
from pathlib import Path
from typing import AsyncIterator, Callable

from ..utils.events import EventEmitter

DEFAULT_CHUNK_SIZE = 64 * 1024


class ProgressStream:
    """
    Async iterable over a file's contents.

    Emits ``"progress"`` with the number of bytes in each chunk as the
    chunk is handed to the consumer. Content is passed through untouched.
    Each instance can be iterated once; create a new one per attempt.

    Usage:
        stream = ProgressStream(path)
        stream.on_progress(lambda delta: ...)
        await transport.send(url, method="PUT", body=stream, ...)
    """

    def __init__(self, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._path = Path(path)
        self._chunk_size = chunk_size
        self._events = EventEmitter()
        self._consumed = False
        self.bytes_read = 0

    @property
    def path(self) -> Path:
        return self._path

    def on_progress(self, callback: Callable[[int], None]) -> None:
        self._events.on("progress", callback)

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise RuntimeError(f"ProgressStream for {self._path} was already consumed")
        self._consumed = True
        return self._read()

    async def _read(self) -> AsyncIterator[bytes]:
        # File reads run in a thread to avoid blocking the event loop
        handle = await asyncio.to_thread(open, self._path, "rb")
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, self._chunk_size)
                if not chunk:
                    break
                self.bytes_read += len(chunk)
                self._events.emit("progress", len(chunk))
                yield chunk
        finally:
            handle.close()
