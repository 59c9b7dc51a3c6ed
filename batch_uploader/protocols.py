"""
Protocols (Interfaces) for the collaborators the orchestrator depends on.
"""
from typing import Any, AsyncIterable, Mapping, Optional, Protocol, runtime_checkable

from .models import TransportResponse


@runtime_checkable
class ICancellationSignal(Protocol):
    """Interface for an abort flag shared by a batch."""

    @property
    def aborted(self) -> bool:
        ...

    @property
    def reason(self) -> Optional[Any]:
        ...

    async def wait(self) -> None:
        """Block until the signal is set."""
        ...

    def raise_if_aborted(self) -> None:
        """Raise the cancellation error if the signal is set."""
        ...

    def is_cancellation(self, exc: BaseException) -> bool:
        """True if ``exc`` came from this signal."""
        ...


@runtime_checkable
class ITransport(Protocol):
    """Interface for sending one streamed request."""

    async def send(
        self,
        url: str,
        *,
        method: str,
        body: AsyncIterable[bytes],
        headers: Mapping[str, str],
        signal: Optional[ICancellationSignal] = None,
    ) -> TransportResponse:
        """Send ``body`` to ``url`` and report whether the server accepted it."""
        ...
