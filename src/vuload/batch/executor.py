"""Concurrent fan-out / ordered fan-in execution of request batches."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

import aiohttp

from vuload._internal.config import HarnessConfig
from vuload._internal.errors import EngineError
from vuload._internal.logging import get_logger
from vuload.batch.request import RequestDescriptor
from vuload.batch.result import ErrorKind, Result, TransportError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

logger = get_logger("batch.executor")


def _noop_callback(result: Result) -> None:
    """Default no-op result callback."""


def _classify(exc: BaseException) -> ErrorKind:
    """Map a transport exception onto an ``ErrorKind``.

    Order matters: aiohttp's timeout and TLS errors are subclasses of its
    connection errors.
    """
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, aiohttp.ClientSSLError):
        return ErrorKind.TLS
    if isinstance(exc, aiohttp.ClientConnectorDNSError):
        return ErrorKind.DNS
    if isinstance(exc, aiohttp.ClientConnectionError):
        return ErrorKind.CONNECTION
    return ErrorKind.PROTOCOL


def _join_repeated(headers: Mapping[str, str]) -> dict[str, str]:
    """Flatten response headers, joining repeated fields with ``", "``."""
    joined: dict[str, str] = {}
    for name, value in headers.items():
        joined[name] = f"{joined[name]}, {value}" if name in joined else value
    return joined


class BatchExecutor:
    """Issues a batch of requests concurrently and returns ordered results.

    Wraps one ``aiohttp.ClientSession`` configured from an explicit
    ``HarnessConfig``; use it as an async context manager. Within a batch
    every request runs as its own coroutine and writes its ``Result`` into
    the slot matching its input position, so the returned list lines up
    with the input regardless of completion order.

    Transport failures are recorded on the corresponding ``Result`` and
    never abort the batch. Each request is attempted exactly once.
    """

    def __init__(
        self,
        config: HarnessConfig | None = None,
        *,
        on_result: Callable[[Result], None] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Default headers, timeout and connection limit. Defaults
                to ``HarnessConfig()``.
            on_result: Callback invoked with each ``Result`` as its request
                completes. Defaults to a no-op.
        """
        self.config = config or HarnessConfig()
        self._on_result = on_result or _noop_callback
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> BatchExecutor:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            headers=dict(self.config.default_headers),
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            connector=aiohttp.TCPConnector(limit=self.config.connection_limit),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def execute_batch(
        self,
        requests: Sequence[RequestDescriptor | Sequence[Any]],
    ) -> list[Result]:
        """Dispatch every request concurrently and wait for all of them.

        Args:
            requests: Descriptors, or ``(method, url[, body[, options]])``
                entries, in the order results should be returned.

        Returns:
            One ``Result`` per request, ``result[i]`` belonging to
            ``requests[i]``.

        Raises:
            RequestDescriptorError: If any entry is not a valid request.
                Raised before anything is dispatched.
            EngineError: If a non-empty batch is executed outside the
                executor's ``async with`` block.
        """
        descriptors = [RequestDescriptor.from_entry(entry) for entry in requests]
        if not descriptors:
            return []

        if self._session is None:
            msg = "BatchExecutor must be used as an async context manager"
            raise EngineError(msg)

        session = self._session
        slots: list[Result | None] = [None] * len(descriptors)

        async def _fill(index: int, request: RequestDescriptor) -> None:
            result = await self._dispatch(session, index, request)
            slots[index] = result
            try:
                self._on_result(result)
            except Exception:
                logger.exception(
                    "Result callback failed for request %d",
                    index,
                    extra={"request_index": index, "url": request.url},
                )

        start = time.monotonic()
        await asyncio.gather(*(_fill(i, r) for i, r in enumerate(descriptors)))

        results = [slot for slot in slots if slot is not None]
        if len(results) != len(descriptors):
            msg = f"Batch of {len(descriptors)} requests produced {len(results)} results"
            raise EngineError(msg)

        logger.debug(
            "Batch of %d requests finished in %.1fms (%d transport errors)",
            len(results),
            (time.monotonic() - start) * 1000,
            sum(1 for r in results if r.failed),
        )
        return results

    async def _dispatch(
        self,
        session: aiohttp.ClientSession,
        index: int,
        request: RequestDescriptor,
    ) -> Result:
        """Perform one request, turning transport failures into a ``Result``.

        ``ValueError`` covers requests aiohttp refuses to serialise, such as
        a malformed header inherited from the session defaults.
        """
        kwargs: dict[str, Any] = {"headers": dict(request.options.headers)}
        if request.body is not None:
            kwargs["data"] = request.body
        if request.options.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=request.options.timeout)

        start = time.monotonic()
        try:
            async with session.request(request.method.value, request.url, **kwargs) as resp:
                body = await resp.read()
                return Result(
                    request_index=index,
                    method=request.method,
                    url=request.url,
                    status=resp.status,
                    headers=_join_repeated(resp.headers),
                    body=body,
                    duration=time.monotonic() - start,
                    tags=request.tags,
                )
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            kind = _classify(exc)
            logger.debug(
                "Request %d %s %s failed (%s): %s",
                index,
                request.method.value,
                request.url,
                kind.value,
                exc,
                extra={"request_index": index, "url": request.url, "error_kind": kind.value},
            )
            return Result(
                request_index=index,
                method=request.method,
                url=request.url,
                duration=time.monotonic() - start,
                error=TransportError(kind=kind, message=f"{type(exc).__name__}: {exc}"),
                tags=request.tags,
            )
