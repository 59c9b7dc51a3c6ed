"""HTTP transport adapter for streamed PUT uploads."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, Mapping, Optional

import httpx

from ..models import TransportResponse
from ..protocols import ICancellationSignal

logger = logging.getLogger(__name__)


class HTTPTransport:
    """
    httpx adapter that sends one streamed request per call.

    Implements ITransport protocol. No retries happen here; the
    orchestrator retries whole uploads. When a cancellation signal is given,
    the request is raced against it and dropped as soon as it fires.

    Usage:
        async with HTTPTransport() as transport:
            response = await transport.send(url, method="PUT", body=stream, headers=headers)
    """

    def __init__(
        self,
        timeout: Optional[float] = 300,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        url: str,
        *,
        method: str,
        body: AsyncIterable[bytes],
        headers: Mapping[str, str],
        signal: Optional[ICancellationSignal] = None,
    ) -> TransportResponse:
        if not self._client:
            raise RuntimeError("HTTPTransport not initialized. Use 'async with' context.")

        request = self._client.request(method, url, content=body, headers=dict(headers))
        if signal is None:
            response = await request
        else:
            response = await self._send_cancellable(request, signal)

        return TransportResponse(
            ok=response.is_success,
            status_code=response.status_code,
            reason=response.reason_phrase,
        )

    async def _send_cancellable(self, request, signal: ICancellationSignal) -> httpx.Response:
        request_task = asyncio.ensure_future(request)
        abort_task = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, abort_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if request_task in done:
                return request_task.result()

            logger.debug(f"Request aborted: {signal.reason}")
            request_task.cancel()
            await asyncio.gather(request_task, return_exceptions=True)
            signal.raise_if_aborted()
            raise RuntimeError("cancellation signal fired without being aborted")
        finally:
            for task in (request_task, abort_task):
                if not task.done():
                    task.cancel()
