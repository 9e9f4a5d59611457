"""Batch builders for a replicated key/value service exposing ``/key``.

Each instance serves ``GET /key/<key>`` returning ``{"<key>": "<value>"}``
and accepts ``POST /key`` with a JSON object of key/value pairs.
"""

from __future__ import annotations

import itertools
import random
from collections.abc import Callable, Iterable
from urllib.parse import quote

from vuload.batch.request import Method, RequestDescriptor, RequestOptions
from vuload.checks.predicates import status_is
from vuload.checks.validator import Check

# Zero-argument callable producing the next key or value.
ValueSource = Callable[[], str]

MAIN_PAGE_CHECK = "main page status was 200"


def exactly(value: str) -> ValueSource:
    """Always produce ``value``."""
    return lambda: value


def sequence(start: int = 0) -> ValueSource:
    """Produce ``"start"``, ``"start + 1"``, ... on successive calls."""
    counter = itertools.count(start)
    return lambda: str(next(counter))


def randomized(seed: int | None = None) -> ValueSource:
    """Produce random non-negative integers as strings.

    Args:
        seed: Seed for a private RNG, for reproducible runs.
    """
    rng = random.Random(seed)  # noqa: S311
    return lambda: str(rng.getrandbits(63))


def key_url(base_url: str, key: str) -> str:
    """Return the URL of ``key`` on the instance at ``base_url``."""
    return f"{base_url.rstrip('/')}/key/{quote(key, safe='')}"


def fetch_key_batch(
    base_urls: Iterable[str],
    key: str,
    *,
    content_type: str = "application/json",
) -> list[RequestDescriptor]:
    """Build one GET of ``key`` per instance, in ``base_urls`` order.

    Every request is tagged ``ctype=<content_type>``.
    """
    options = RequestOptions(tags={"ctype": content_type})
    return [RequestDescriptor(Method.GET, key_url(url, key), options=options) for url in base_urls]


def store_key_request(base_url: str, key: str, value: str) -> RequestDescriptor:
    """Build a POST storing ``key = value`` on the instance at ``base_url``."""
    return RequestDescriptor.with_json(
        Method.POST,
        f"{base_url.rstrip('/')}/key",
        {key: value},
    )


def fetch_key_plan(base_urls: Iterable[str], key: str | ValueSource) -> Callable[[], list[RequestDescriptor]]:
    """Return a plan building a fetch batch per iteration.

    Args:
        base_urls: Instances to query.
        key: Fixed key, or a generator producing one key per iteration.
    """
    urls = tuple(base_urls)
    next_key = key if callable(key) else exactly(key)
    return lambda: fetch_key_batch(urls, next_key())


def store_key_plan(base_url: str, key: str, values: ValueSource) -> Callable[[], list[RequestDescriptor]]:
    """Return a plan writing a fresh value for ``key`` every iteration."""
    return lambda: [store_key_request(base_url, key, values())]


def default_checks() -> list[Check]:
    """Return the stock check: the first instance answered 200."""
    return [Check(predicates={MAIN_PAGE_CHECK: status_is(200)}, target=0)]
