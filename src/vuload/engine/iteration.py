"""Virtual-user iteration lifecycle: build, execute, validate, pace."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from vuload._internal.errors import ConfigError, EngineError
from vuload._internal.logging import get_logger
from vuload.checks.validator import Check, ValidationOutcome, validate_batch

if TYPE_CHECKING:
    from vuload.batch.executor import BatchExecutor
    from vuload.batch.result import Result

logger = get_logger("engine.iteration")

BatchPlan = Sequence[Any] | Callable[[], Sequence[Any]]


class RunnerState(Enum):
    """State machine for an iteration runner."""

    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class IterationReport:
    """Everything recorded about one iteration.

    Attributes:
        iteration: Zero-based iteration number within the runner.
        started_at: Wall-clock timestamp (``time.time()``) of the start.
        duration: Seconds spent building, executing and validating the batch.
        results: Ordered results of the batch.
        outcomes: Validation outcomes, in check order.
    """

    iteration: int
    started_at: float
    duration: float
    results: list[Result] = field(default_factory=list)
    outcomes: list[ValidationOutcome] = field(default_factory=list)

    @property
    def checks_passed(self) -> int:
        """Return the number of passed outcomes."""
        return sum(1 for o in self.outcomes if o.passed)

    @property
    def checks_failed(self) -> int:
        """Return the number of failed outcomes."""
        return sum(1 for o in self.outcomes if not o.passed)

    @property
    def transport_errors(self) -> int:
        """Return the number of results without an HTTP response."""
        return sum(1 for r in self.results if r.failed)

    @property
    def passed(self) -> bool:
        """Return True if every outcome passed."""
        return all(o.passed for o in self.outcomes)


class IterationRunner:
    """Runs iterations of one virtual user.

    Each iteration builds a batch from the plan, executes it through the
    ``BatchExecutor``, validates the results with the configured checks and
    records an ``IterationReport``. ``run`` repeats this with a pacing
    delay in between until the scheduler sets its stop event; the runner
    itself never decides to finish.

    State machine: IDLE -> RUNNING -> IDLE -> ... -> STOPPED
    """

    def __init__(
        self,
        executor: BatchExecutor,
        plan: BatchPlan,
        checks: Sequence[Check] = (),
        *,
        pacing_interval: float = 1.0,
        on_report: Callable[[IterationReport], None] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            executor: An entered ``BatchExecutor``.
            plan: The batch to send each iteration, or a zero-argument
                callable building a fresh batch per iteration.
            checks: Checks applied to every batch's results.
            pacing_interval: Seconds to wait between iterations in ``run``.
            on_report: Callback invoked with each iteration's report.

        Raises:
            ConfigError: If ``pacing_interval`` is negative.
        """
        if pacing_interval < 0:
            msg = f"pacing_interval must be >= 0, got: {pacing_interval}"
            raise ConfigError(msg)

        self._executor = executor
        self._plan = plan
        self._checks = tuple(checks)
        self._pacing_interval = pacing_interval
        self._on_report = on_report
        self._state = RunnerState.IDLE
        self._iterations = 0

    @property
    def state(self) -> RunnerState:
        """Return the current runner state."""
        return self._state

    @property
    def iterations(self) -> int:
        """Return the number of completed iterations."""
        return self._iterations

    def stop(self) -> None:
        """Move an idle runner to the terminal STOPPED state.

        Raises:
            EngineError: If an iteration is in flight.
        """
        if self._state is RunnerState.RUNNING:
            msg = "Cannot stop a runner while an iteration is in flight; cancel it instead"
            raise EngineError(msg)
        self._state = RunnerState.STOPPED

    async def run_iteration(self) -> IterationReport:
        """Execute one iteration and return its report.

        Raises:
            EngineError: If an iteration is already running or the runner
                is stopped.
            RequestDescriptorError: If the plan produced an invalid batch.
                The runner returns to IDLE.
        """
        if self._state is RunnerState.RUNNING:
            msg = "An iteration is already running"
            raise EngineError(msg)
        if self._state is RunnerState.STOPPED:
            msg = "Runner is stopped"
            raise EngineError(msg)

        self._state = RunnerState.RUNNING
        started_at = time.time()
        start = time.monotonic()
        try:
            batch = self._plan() if callable(self._plan) else self._plan
            results = await self._executor.execute_batch(batch)
            outcomes = validate_batch(results, self._checks)
        except asyncio.CancelledError:
            self._state = RunnerState.STOPPED
            logger.debug("Iteration %d cancelled", self._iterations)
            raise
        except BaseException:
            self._state = RunnerState.IDLE
            raise

        report = IterationReport(
            iteration=self._iterations,
            started_at=started_at,
            duration=time.monotonic() - start,
            results=results,
            outcomes=outcomes,
        )
        self._iterations += 1
        self._state = RunnerState.IDLE

        for outcome in outcomes:
            if not outcome.passed:
                logger.info(
                    "Check failed: %s (result %s)%s",
                    outcome.name,
                    outcome.request_index,
                    f": {outcome.error}" if outcome.error else "",
                    extra={
                        "iteration": report.iteration,
                        "check": outcome.name,
                        "request_index": outcome.request_index,
                    },
                )
        logger.debug(
            "Iteration %d: %d requests, %d transport errors, checks %d/%d passed, %.1fms",
            report.iteration,
            len(results),
            report.transport_errors,
            report.checks_passed,
            len(outcomes),
            report.duration * 1000,
        )

        if self._on_report is not None:
            self._on_report(report)
        return report

    async def run(self, stop_event: asyncio.Event) -> int:
        """Run paced iterations until ``stop_event`` is set.

        The pacing wait ends early when the event is set. Cancelling the
        awaiting task abandons the in-flight batch.

        Args:
            stop_event: Set by the scheduler when the run is complete.

        Returns:
            The number of iterations completed by this call.
        """
        completed = 0
        try:
            while not stop_event.is_set():
                await self.run_iteration()
                completed += 1
                if stop_event.is_set():
                    break
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=self._pacing_interval)
        finally:
            self._state = RunnerState.STOPPED
        return completed
