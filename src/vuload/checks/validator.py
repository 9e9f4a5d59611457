"""Named predicate evaluation against batch results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from vuload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from vuload._internal.types import Predicate
    from vuload.batch.result import Result

logger = get_logger("checks.validator")


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of evaluating one named predicate.

    Attributes:
        name: The predicate's name.
        passed: Whether the predicate held.
        request_index: Index of the result the predicate was evaluated
            against, if known.
        error: Why evaluation failed, if the predicate raised or its
            target result was missing.
    """

    name: str
    passed: bool
    request_index: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class Check:
    """Predicates bound to the batch results they apply to.

    Attributes:
        predicates: Predicate functions keyed by their reported name.
        target: Result index, a sequence of indices, or None for every
            result in the batch.
    """

    predicates: Mapping[str, Predicate]
    target: int | Sequence[int] | None = 0

    def indices(self, batch_size: int) -> tuple[int, ...]:
        """Return the result indices this check applies to."""
        if self.target is None:
            return tuple(range(batch_size))
        if isinstance(self.target, int):
            return (self.target,)
        return tuple(self.target)


def validate(
    result: Result,
    predicates: Mapping[str, Predicate],
) -> list[ValidationOutcome]:
    """Evaluate every predicate against ``result``.

    A predicate that raises is recorded as failed with the error text; the
    remaining predicates are still evaluated. Results carrying a transport
    error are evaluated like any other.

    Args:
        result: The result to check.
        predicates: Predicate functions keyed by name.

    Returns:
        One outcome per predicate, in mapping order.
    """
    outcomes: list[ValidationOutcome] = []
    for name, predicate in predicates.items():
        try:
            passed = bool(predicate(result))
        except Exception as exc:
            logger.debug(
                "Predicate %r raised on result %d",
                name,
                result.request_index,
                exc_info=True,
            )
            outcomes.append(
                ValidationOutcome(
                    name=name,
                    passed=False,
                    request_index=result.request_index,
                    error=f"{type(exc).__name__}: {exc}",
                )
            )
            continue
        outcomes.append(ValidationOutcome(name=name, passed=passed, request_index=result.request_index))
    return outcomes


def validate_batch(
    results: Sequence[Result],
    checks: Sequence[Check],
) -> list[ValidationOutcome]:
    """Apply each check to the results it targets.

    A target index with no corresponding result yields failed outcomes
    instead of raising.

    Args:
        results: Ordered results of one batch.
        checks: Checks to apply, in reporting order.

    Returns:
        Outcomes for every (check, target, predicate) combination.
    """
    outcomes: list[ValidationOutcome] = []
    for check in checks:
        for index in check.indices(len(results)):
            if not 0 <= index < len(results):
                outcomes.extend(
                    ValidationOutcome(
                        name=name,
                        passed=False,
                        request_index=index,
                        error=f"no result at index {index}",
                    )
                    for name in check.predicates
                )
                continue
            outcomes.extend(validate(results[index], check.predicates))
    return outcomes
