"""Per-request results produced by the batch executor."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from vuload.batch.request import Method


class ErrorKind(Enum):
    """Classification of transport-level failures."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    DNS = "dns"
    TLS = "tls"
    PROTOCOL = "protocol"


@dataclass(frozen=True)
class TransportError:
    """Why a request never produced an HTTP response.

    Attributes:
        kind: Failure classification.
        message: Exception type and message, e.g.
            ``"ClientConnectorError: Cannot connect to host ..."``.
    """

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result:
    """Outcome of one request in a batch.

    Attributes:
        request_index: Position of the originating request in its batch.
        method: HTTP method of the originating request.
        url: URL of the originating request.
        status: HTTP status code, or None if the transport failed.
        headers: Response headers (empty on transport failure). A header
            repeated in the response appears once, its values joined with
            ``", "``.
        body: Response body (empty on transport failure).
        duration: Elapsed seconds from dispatch to body fully read or failure.
        error: Transport failure descriptor, None if a response arrived.
        tags: Tags copied from the originating request.
    """

    request_index: int
    method: Method
    url: str
    status: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    duration: float = 0.0
    error: TransportError | None = None
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def failed(self) -> bool:
        """Return True if the request never got an HTTP response."""
        return self.error is not None

    @property
    def ok(self) -> bool:
        """Return True for a response with a status below 400."""
        return self.error is None and self.status is not None and self.status < 400

    @property
    def duration_ms(self) -> float:
        """Return the elapsed time in milliseconds."""
        return self.duration * 1000

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the body, replacing undecodable bytes."""
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body)
