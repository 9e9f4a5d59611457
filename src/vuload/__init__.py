"""vuload: virtual users firing concurrent HTTP batches at service instances."""

from __future__ import annotations

from vuload._internal.config import HarnessConfig, load_config
from vuload._internal.errors import ConfigError, EngineError, RequestDescriptorError, VuLoadError
from vuload.batch.executor import BatchExecutor
from vuload.batch.request import Method, RequestDescriptor, RequestOptions
from vuload.batch.result import ErrorKind, Result, TransportError
from vuload.checks.validator import Check, ValidationOutcome, validate, validate_batch
from vuload.engine.iteration import IterationReport, IterationRunner, RunnerState

__version__ = "0.1.0"

__all__ = [
    "BatchExecutor",
    "Check",
    "ConfigError",
    "EngineError",
    "ErrorKind",
    "HarnessConfig",
    "IterationReport",
    "IterationRunner",
    "Method",
    "RequestDescriptor",
    "RequestDescriptorError",
    "RequestOptions",
    "Result",
    "RunnerState",
    "TransportError",
    "ValidationOutcome",
    "VuLoadError",
    "load_config",
    "validate",
    "validate_batch",
]
