"""Custom exception hierarchy for vuload."""

from __future__ import annotations


class VuLoadError(Exception):
    """Base exception for all vuload errors.

    Transport failures and failed checks are never raised; they are
    recorded on ``Result`` and ``ValidationOutcome`` values instead. Only
    caller mistakes surface as exceptions derived from this class.
    """


class RequestDescriptorError(VuLoadError):
    """Raised when a request descriptor cannot be constructed.

    Examples:
        - The method is not a supported HTTP verb.
        - The URL is not an absolute http(s) URI.
        - A GET request carries a body.
        - An unknown option key is supplied.
    """


class ConfigError(VuLoadError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Required environment variable has an invalid value.
        - Configuration value is out of acceptable range.
    """


class EngineError(VuLoadError):
    """Raised when the executor or iteration runner is misused.

    Examples:
        - A batch is executed outside the executor's ``async with`` block.
        - An iteration is started while another one is in flight.
        - An iteration is started after the runner was stopped.
    """
