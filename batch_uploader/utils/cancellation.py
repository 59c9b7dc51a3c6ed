"""Cancellation signal shared by all uploads of one batch."""
import asyncio
from typing import Any, Optional

from ..errors import UploadAbortedError


class CancellationSignal:
    """
    One-shot abort flag with an optional reason.

    ``aborted`` may flip at any time; uploads check it before every attempt
    and the transport awaits ``wait()`` to interrupt in-flight requests.
    """

    def __init__(self):
        self._event: Optional[asyncio.Event] = None
        self._aborted = False
        self._reason: Optional[Any] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[Any]:
        return self._reason

    def abort(self, reason: Optional[Any] = None) -> None:
        """Set the signal. Later calls keep the first reason."""
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the signal is set."""
        if self._event is None:
            # Created lazily so the signal can be built outside a running loop
            self._event = asyncio.Event()
            if self._aborted:
                self._event.set()
        await self._event.wait()

    def error(self) -> BaseException:
        """The exception that represents this cancellation."""
        if isinstance(self._reason, Exception):
            return self._reason
        return UploadAbortedError(self._reason)

    def raise_if_aborted(self) -> None:
        if self._aborted:
            raise self.error()

    def is_cancellation(self, exc: BaseException) -> bool:
        """True if ``exc`` is how this signal surfaces a cancellation."""
        if isinstance(exc, UploadAbortedError):
            return True
        return self._aborted and exc is self._reason
