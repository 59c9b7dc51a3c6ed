"""
Upload orchestrator - pushes a batch of files to pre-signed URLs.

Flow per file:
1. Wait for a free slot (at most ``max_concurrency`` files upload at once)
2. Check the cancellation signal, then PUT a fresh progress stream
3. On a retryable failure roll back the file's bytes and try again
4. Release the slot after success or a terminal failure
"""
import asyncio
import logging
from functools import partial
from typing import Callable, Iterable, List, Optional, Set

from .errors import UploadExhaustedError, UploadFailedError
from .models import FileState, UploadConfig, UploadDescriptor
from .protocols import ICancellationSignal, ITransport
from .retry import RetryDecision, RetryExhausted, RetryPolicy
from .services.progress_stream import ProgressStream
from .services.transport import HTTPTransport
from .utils.cancellation import CancellationSignal
from .utils.events import FileProgress, ProgressAggregator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class UploadOrchestrator:
    """
    Uploads many files concurrently with per-file retries and one
    aggregated progress counter.

    The first terminal failure (cancellation or exhausted retries) is raised
    from ``upload()`` right away. What happens to the other files depends on
    ``config.cancel_on_failure``: by default they keep uploading in the
    background until they finish, and ``drain()`` (or leaving the ``async
    with`` block) waits for them; otherwise they are cancelled before the
    error is raised.

    Usage:
        async with HTTPTransport() as transport:
            async with UploadOrchestrator(transport, signal, config) as uploader:
                await uploader.upload(descriptors, on_progress=print)
    """

    def __init__(
        self,
        transport: ITransport,
        signal: Optional[ICancellationSignal] = None,
        config: Optional[UploadConfig] = None,
    ):
        """
        Args:
            transport: Sends the streamed PUT requests
            signal: Shared cancellation signal (a fresh one if omitted)
            config: Retry budget, concurrency bound and backoff settings
        """
        self._transport = transport
        self._signal = signal or CancellationSignal()
        self._config = config or UploadConfig()
        self._retry = RetryPolicy.from_config(self._config, classifier=self._classify)
        self._background: Set[asyncio.Task] = set()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.drain()

    @property
    def signal(self) -> ICancellationSignal:
        return self._signal

    @property
    def config(self) -> UploadConfig:
        return self._config

    async def upload(
        self,
        files: Iterable[UploadDescriptor],
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Upload every file; return when all succeeded.

        Args:
            files: Descriptors, admitted in this order
            on_progress: Called synchronously with the cumulative byte count
                after every chunk and after every rollback

        Raises:
            UploadExhaustedError: A file failed ``retries + 1`` times
            UploadAbortedError: The signal fired with a reason that is not an
                ``Exception`` (or none at all)
            Exception: The signal's reason, when it is one
        """
        descriptors = list(files)
        if not descriptors:
            return

        aggregator = ProgressAggregator(on_progress)
        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        total_bytes = sum(d.content_length for d in descriptors)
        logger.debug(
            f"Uploading {len(descriptors)} file(s), {total_bytes} bytes, "
            f"{self._config.max_concurrency} at a time"
        )

        tasks: List[asyncio.Task] = []
        for descriptor in descriptors:
            task = asyncio.create_task(self._upload_file(descriptor, aggregator, semaphore))
            task.add_done_callback(partial(self._log_outcome, descriptor))
            tasks.append(task)

        try:
            await asyncio.gather(*tasks)
        except BaseException:
            remaining = [task for task in tasks if not task.done()]
            if remaining:
                await self._handle_remaining(remaining)
            raise

    async def drain(self) -> None:
        """Wait for uploads still running after a failed ``upload()`` call."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _handle_remaining(self, remaining: List[asyncio.Task]) -> None:
        if self._config.cancel_on_failure:
            logger.debug(f"Cancelling {len(remaining)} remaining upload(s)")
            for task in remaining:
                task.cancel()
            await asyncio.gather(*remaining, return_exceptions=True)
            return

        logger.debug(f"{len(remaining)} upload(s) continue in the background")
        self._background.update(remaining)

    async def _upload_file(
        self,
        descriptor: UploadDescriptor,
        aggregator: ProgressAggregator,
        semaphore: asyncio.Semaphore,
    ) -> None:
        progress = aggregator.track(descriptor.path, descriptor.content_length)
        logger.debug(
            f"Uploading {descriptor.content_length} bytes of {descriptor.content_type} "
            f"for '{descriptor.path}' to '{descriptor.url}'"
        )

        def on_retry(exc: BaseException, attempt: int) -> None:
            progress.state = FileState.RETRY_WAIT
            logger.debug(f"Retrying upload {descriptor.url} (attempt {attempt}): {exc}")
            aggregator.rollback(progress)

        async with semaphore:
            try:
                await self._retry.run(
                    lambda attempt: self._attempt(descriptor, progress, aggregator, attempt),
                    on_retry=on_retry,
                    sleep=self._backoff,
                )
            except RetryExhausted as exc:
                self._discard(progress, aggregator, FileState.EXHAUSTED)
                raise UploadExhaustedError(descriptor, exc.attempts) from exc.last_error
            except BaseException:
                self._discard(progress, aggregator, FileState.CANCELLED)
                raise

        progress.state = FileState.SUCCEEDED
        logger.debug(f"Uploaded '{descriptor.path}'.")

    async def _attempt(
        self,
        descriptor: UploadDescriptor,
        progress: FileProgress,
        aggregator: ProgressAggregator,
        attempt: int,
    ) -> None:
        self._signal.raise_if_aborted()

        progress.attempt = attempt
        progress.state = FileState.ATTEMPTING

        stream = ProgressStream(descriptor.path, self._config.chunk_size)
        stream.on_progress(lambda delta: aggregator.add(progress, delta))

        response = await self._transport.send(
            descriptor.url,
            method="PUT",
            body=stream,
            headers=descriptor.headers,
            signal=self._signal,
        )
        if not response.ok:
            logger.debug(f"Uploading '{descriptor.path}' failed: {response}")
            raise UploadFailedError(descriptor, response)

    async def _backoff(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early if the signal fires."""
        sleeper = asyncio.ensure_future(asyncio.sleep(delay))
        aborted = asyncio.ensure_future(self._signal.wait())
        try:
            await asyncio.wait({sleeper, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, aborted):
                if not task.done():
                    task.cancel()

    def _classify(self, exc: BaseException) -> RetryDecision:
        if self._signal.is_cancellation(exc):
            return RetryDecision.TERMINAL
        return RetryDecision.RETRY

    @staticmethod
    def _discard(progress: FileProgress, aggregator: ProgressAggregator, state: FileState) -> None:
        progress.state = state
        if progress.bytes_uploaded:
            aggregator.rollback(progress)

    def _log_outcome(self, descriptor: UploadDescriptor, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.debug(f"Upload of '{descriptor.path}' cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"Upload of '{descriptor.path}' failed: {exc}")


async def upload_files(
    files: Iterable[UploadDescriptor],
    on_progress: Optional[ProgressCallback] = None,
    *,
    signal: Optional[ICancellationSignal] = None,
    config: Optional[UploadConfig] = None,
    transport: Optional[ITransport] = None,
) -> None:
    """
    Upload ``files`` with a one-off orchestrator.

    Configuration defaults to ``UploadConfig.from_env()``. An
    ``HTTPTransport`` is opened for the call unless ``transport`` is given.
    """
    config = config or UploadConfig.from_env()
    if transport is not None:
        async with UploadOrchestrator(transport, signal, config) as uploader:
            await uploader.upload(files, on_progress)
        return

    async with HTTPTransport() as http:
        async with UploadOrchestrator(http, signal, config) as uploader:
            await uploader.upload(files, on_progress)
