"""Immutable, validated descriptions of single HTTP calls."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from yarl import URL

from vuload._internal.errors import RequestDescriptorError

_EMPTY: Mapping[str, str] = MappingProxyType({})
_OPTION_KEYS = frozenset({"headers", "tags", "timeout"})


class Method(str, Enum):
    """Supported HTTP verbs."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Method | str) -> Method:
        """Return the verb for ``value``, matching case-insensitively.

        Raises:
            RequestDescriptorError: If ``value`` is not a supported verb.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper())
            except ValueError:
                pass
        msg = f"Unsupported HTTP method: {value!r}"
        raise RequestDescriptorError(msg)


_FORBIDDEN_HEADER_CHARS = ("\r", "\n", "\0")


def _frozen_str_mapping(name: str, value: object, *, header_safe: bool = False) -> Mapping[str, str]:
    if value is None:
        return _EMPTY
    if not isinstance(value, Mapping):
        msg = f"{name} must be a mapping of str to str, got: {type(value).__name__}"
        raise RequestDescriptorError(msg)
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            msg = f"{name} must map str to str, got entry {key!r}: {item!r}"
            raise RequestDescriptorError(msg)
        if header_safe and any(c in key or c in item for c in _FORBIDDEN_HEADER_CHARS):
            msg = f"{name} must not contain CR, LF or NUL characters, got entry {key!r}: {item!r}"
            raise RequestDescriptorError(msg)
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class RequestOptions:
    """Per-request options.

    Attributes:
        headers: Headers merged over the executor's default headers.
        tags: Opaque metadata copied onto the result for reporting.
        timeout: Request timeout in seconds. None uses the executor default.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    tags: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _frozen_str_mapping("headers", self.headers, header_safe=True))
        object.__setattr__(self, "tags", _frozen_str_mapping("tags", self.tags))
        if self.timeout is not None:
            if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
                msg = f"timeout must be a number of seconds, got: {self.timeout!r}"
                raise RequestDescriptorError(msg)
            if self.timeout <= 0:
                msg = f"timeout must be positive, got: {self.timeout}"
                raise RequestDescriptorError(msg)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | RequestOptions | None) -> RequestOptions:
        """Build options from a plain ``{"headers", "tags", "timeout"}`` mapping.

        Raises:
            RequestDescriptorError: If the mapping has unknown keys or
                values of the wrong type.
        """
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            msg = f"options must be a mapping, got: {type(options).__name__}"
            raise RequestDescriptorError(msg)
        unknown = set(options) - _OPTION_KEYS
        if unknown:
            msg = f"Unknown request options: {', '.join(sorted(map(str, unknown)))}"
            raise RequestDescriptorError(msg)
        return cls(
            headers=options.get("headers"),  # type: ignore[arg-type]
            tags=options.get("tags"),  # type: ignore[arg-type]
            timeout=options.get("timeout"),
        )


@dataclass(frozen=True)
class RequestDescriptor:
    """One HTTP call in a batch.

    Validated on construction; a descriptor that exists is always
    dispatchable.

    Attributes:
        method: HTTP verb. Strings are accepted and normalised.
        url: Absolute http(s) URL.
        body: Request body. ``str`` is UTF-8 encoded. Not allowed on GET.
        options: Headers, tags and timeout. A plain mapping is accepted.
    """

    method: Method
    url: str
    body: bytes | None = None
    options: RequestOptions = field(default_factory=RequestOptions)

    def __post_init__(self) -> None:
        method = Method.parse(self.method)
        object.__setattr__(self, "method", method)

        if not isinstance(self.url, str):
            msg = f"url must be a string, got: {type(self.url).__name__}"
            raise RequestDescriptorError(msg)
        try:
            parsed = URL(self.url)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid URL {self.url!r}: {exc}"
            raise RequestDescriptorError(msg) from exc
        if not parsed.is_absolute() or parsed.scheme not in ("http", "https") or not parsed.host:
            msg = f"URL must be an absolute http(s) URI, got: {self.url!r}"
            raise RequestDescriptorError(msg)

        body = self.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        elif isinstance(body, bytearray):
            body = bytes(body)
        elif body is not None and not isinstance(body, bytes):
            msg = f"body must be bytes or str, got: {type(body).__name__}"
            raise RequestDescriptorError(msg)
        if body is not None and method is Method.GET:
            msg = f"GET request to {self.url} must not carry a body"
            raise RequestDescriptorError(msg)
        object.__setattr__(self, "body", body)

        object.__setattr__(self, "options", RequestOptions.from_mapping(self.options))

    @property
    def tags(self) -> Mapping[str, str]:
        """Return the request's tags."""
        return self.options.tags

    @classmethod
    def from_entry(cls, entry: RequestDescriptor | Sequence[Any]) -> RequestDescriptor:
        """Build a descriptor from a ``(method, url[, body[, options]])`` entry.

        Existing descriptors are returned unchanged.

        Raises:
            RequestDescriptorError: If the entry has the wrong shape or
                describes an invalid request.
        """
        if isinstance(entry, cls):
            return entry
        if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence):
            msg = f"Batch entry must be a RequestDescriptor or a sequence, got: {entry!r}"
            raise RequestDescriptorError(msg)
        if not 2 <= len(entry) <= 4:
            msg = f"Batch entry must have 2 to 4 items (method, url, body, options), got {len(entry)}"
            raise RequestDescriptorError(msg)
        method, url, *rest = entry
        body = rest[0] if rest else None
        options = rest[1] if len(rest) > 1 else None
        return cls(
            method=method,
            url=url,
            body=body,
            options=options,  # type: ignore[arg-type]
        )

    @classmethod
    def with_json(
        cls,
        method: Method | str,
        url: str,
        payload: object,
        options: Mapping[str, Any] | RequestOptions | None = None,
    ) -> RequestDescriptor:
        """Build a descriptor whose body is ``payload`` encoded as JSON.

        ``Content-Type: application/json`` is added unless the options
        already set a content type.
        """
        opts = RequestOptions.from_mapping(options)
        headers = dict(opts.headers)
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"
        return cls(
            method=method,  # type: ignore[arg-type]
            url=url,
            body=json.dumps(payload).encode("utf-8"),
            options=RequestOptions(headers=headers, tags=opts.tags, timeout=opts.timeout),
        )
