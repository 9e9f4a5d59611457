"""Reusable predicate factories for common response checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from vuload.batch.result import Result


def status_is(*codes: int) -> Callable[[Result], bool]:
    """Pass when the response status is one of ``codes``."""
    expected = frozenset(codes)

    def _check(result: Result) -> bool:
        return result.status is not None and result.status in expected

    return _check


def status_ok() -> Callable[[Result], bool]:
    """Pass on any 2xx status."""

    def _check(result: Result) -> bool:
        return result.status is not None and 200 <= result.status < 300

    return _check


def no_transport_error() -> Callable[[Result], bool]:
    """Pass when the request received an HTTP response of any status."""

    def _check(result: Result) -> bool:
        return result.error is None

    return _check


def body_contains(text: str) -> Callable[[Result], bool]:
    """Pass when the decoded body contains ``text``."""

    def _check(result: Result) -> bool:
        return text in result.text()

    return _check


def json_has_key(key: str) -> Callable[[Result], bool]:
    """Pass when the body is a JSON object containing ``key``.

    A body that is not valid JSON raises, which the validator records as
    a failed outcome.
    """

    def _check(result: Result) -> bool:
        data = result.json()
        return isinstance(data, dict) and key in data

    return _check


def duration_below(seconds: float) -> Callable[[Result], bool]:
    """Pass when the request completed in under ``seconds``."""

    def _check(result: Result) -> bool:
        return result.duration < seconds

    return _check
