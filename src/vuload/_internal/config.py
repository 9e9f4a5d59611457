"""Run-scoped configuration for vuload."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vuload._internal.errors import ConfigError

if TYPE_CHECKING:
    from vuload._internal.types import Headers

_FORBIDDEN_HEADER_CHARS = ("\r", "\n", "\0")


@dataclass(frozen=True)
class HarnessConfig:
    """Configuration threaded into the batch executor and iteration runner.

    Attributes:
        target_urls: Base URLs of the service instances under test.
        pacing_interval: Seconds a virtual user waits between iterations.
        default_headers: HTTP headers sent with every request.
        request_timeout: Default per-request timeout in seconds.
        connection_limit: Maximum simultaneous connections per executor.
    """

    target_urls: tuple[str, ...] = ()
    pacing_interval: float = 1.0
    default_headers: Headers = field(default_factory=dict)
    request_timeout: float = 30.0
    connection_limit: int = 100

    def __post_init__(self) -> None:
        if self.pacing_interval < 0:
            msg = f"pacing_interval must be >= 0, got: {self.pacing_interval}"
            raise ConfigError(msg)
        if self.request_timeout <= 0:
            msg = f"request_timeout must be positive, got: {self.request_timeout}"
            raise ConfigError(msg)
        if self.connection_limit < 1:
            msg = f"connection_limit must be >= 1, got: {self.connection_limit}"
            raise ConfigError(msg)
        for name, value in self.default_headers.items():
            if any(c in name or c in value for c in _FORBIDDEN_HEADER_CHARS):
                msg = f"default_headers must not contain CR, LF or NUL characters, got entry {name!r}: {value!r}"
                raise ConfigError(msg)


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None


def load_config() -> HarnessConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        VULOAD_TARGETS: Comma-separated base URLs of the instances under test.
        VULOAD_PACING: Seconds between iterations (default: 1.0).
        VULOAD_TIMEOUT: Request timeout in seconds (default: 30.0).
        VULOAD_POOL_SIZE: Connection limit (default: 100).

    Returns:
        Populated HarnessConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    targets_str = os.environ.get("VULOAD_TARGETS", "")
    pacing_str = os.environ.get("VULOAD_PACING", "1.0")
    timeout_str = os.environ.get("VULOAD_TIMEOUT", "30.0")
    pool_size_str = os.environ.get("VULOAD_POOL_SIZE", "100")

    targets = tuple(url.strip() for url in targets_str.split(",") if url.strip())

    pacing = _parse_float("VULOAD_PACING", pacing_str)
    if pacing < 0:
        msg = f"VULOAD_PACING must be >= 0, got: {pacing}"
        raise ConfigError(msg)

    timeout = _parse_float("VULOAD_TIMEOUT", timeout_str)
    if timeout <= 0:
        msg = f"VULOAD_TIMEOUT must be positive, got: {timeout}"
        raise ConfigError(msg)

    try:
        pool_size = int(pool_size_str)
    except ValueError:
        msg = f"VULOAD_POOL_SIZE must be an integer, got: {pool_size_str!r}"
        raise ConfigError(msg) from None

    if pool_size < 1:
        msg = f"VULOAD_POOL_SIZE must be >= 1, got: {pool_size}"
        raise ConfigError(msg)

    return HarnessConfig(
        target_urls=targets,
        pacing_interval=pacing,
        request_timeout=timeout,
        connection_limit=pool_size,
    )
