"""Shared test fixtures for the vuload test suite."""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Mock key/value instance
# =============================================================================

_STORE = web.AppKey("store", dict)
_HITS = web.AppKey("hits", list)


async def _get_key_handler(request: web.Request) -> web.Response:
    """Return ``{key: value}`` for a stored key, 404 otherwise."""
    request.app[_HITS].append(request.path)
    key = request.match_info["key"]
    store = request.app[_STORE]
    if key not in store:
        return web.json_response({"error": f"key {key!r} not found"}, status=404)
    return web.json_response({key: store[key]})


async def _set_key_handler(request: web.Request) -> web.Response:
    """Store every pair of the posted JSON object."""
    request.app[_HITS].append(request.path)
    data = await request.json()
    request.app[_STORE].update(data)
    return web.json_response(data)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    request.app[_HITS].append(request.path)
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    request.app[_HITS].append(request.path)
    status = int(request.query.get("status", "500"))
    return web.json_response({"error": True}, status=status)


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    request.app[_HITS].append(request.path)
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        },
    )


async def _replicas_handler(request: web.Request) -> web.Response:
    """Answer with the same header field twice."""
    request.app[_HITS].append(request.path)
    response = web.json_response({"replicas": 2})
    response.headers.add("X-Replica", "a")
    response.headers.add("X-Replica", "b")
    return response


def _create_kv_app(hits: list[str]) -> web.Application:
    """Build a key/value instance app pre-seeded with ``user1``."""
    app = web.Application()
    app[_STORE] = {"user1": "alice"}
    app[_HITS] = hits
    app.router.add_get("/key/{key}", _get_key_handler)
    app.router.add_post("/key", _set_key_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_get("/replicas", _replicas_handler)
    app.router.add_route("*", "/error", _error_handler)
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    return app


@dataclass
class KvCluster:
    """Running mock instances.

    Attributes:
        urls: Base URLs, one per instance.
        hits: Paths requested across all instances, in arrival order.
    """

    urls: list[str]
    hits: list[str] = field(default_factory=list)


async def _start_cluster(size: int) -> tuple[KvCluster, list[web.AppRunner]]:
    cluster = KvCluster(urls=[])
    runners: list[web.AppRunner] = []
    for _ in range(size):
        runner = web.AppRunner(_create_kv_app(cluster.hits))
        await runner.setup()
        port = _get_free_port()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        cluster.urls.append(f"http://127.0.0.1:{port}")
    return cluster, runners


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def kv_cluster() -> AsyncIterator[KvCluster]:
    """Five mock key/value instances, like ports 11000-11004 of a real cluster."""
    cluster, runners = await _start_cluster(5)
    yield cluster
    for runner in runners:
        await runner.cleanup()


@pytest.fixture
async def kv_server() -> AsyncIterator[KvCluster]:
    """A single mock key/value instance."""
    cluster, runners = await _start_cluster(1)
    yield cluster
    for runner in runners:
        await runner.cleanup()
