"""Shared type aliases for vuload."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vuload.batch.result import Result

# HTTP headers dictionary.
Headers = dict[str, str]

# Named boolean check applied to a result.
Predicate = Callable[["Result"], object]
