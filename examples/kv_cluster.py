"""Five-instance key/value smoke load with 10 virtual users for 10 seconds.

Each virtual user GETs ``/key/user1`` from every instance in one batch,
checks that the first instance answered 200, and paces itself for the
configured interval. Targets come from ``VULOAD_TARGETS`` and default to
``localhost:11000`` .. ``localhost:11004``.

    python examples/kv_cluster.py
"""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console

from vuload import BatchExecutor, IterationReport, IterationRunner, load_config
from vuload._internal.logging import setup_logging
from vuload.workloads.kvstore import default_checks, fetch_key_plan

VIRTUAL_USERS = 10
DURATION_SECONDS = 10.0
DEFAULT_TARGETS = tuple(f"http://localhost:{port}" for port in range(11000, 11005))


async def main() -> None:
    setup_logging(logging.INFO)
    config = load_config()
    targets = config.target_urls or DEFAULT_TARGETS
    reports: list[IterationReport] = []
    stop = asyncio.Event()

    async with BatchExecutor(config) as executor:

        async def _virtual_user() -> int:
            runner = IterationRunner(
                executor,
                fetch_key_plan(targets, "user1"),
                default_checks(),
                pacing_interval=config.pacing_interval,
                on_report=reports.append,
            )
            return await runner.run(stop)

        users = [asyncio.create_task(_virtual_user()) for _ in range(VIRTUAL_USERS)]
        await asyncio.sleep(DURATION_SECONDS)
        stop.set()
        iterations = sum(await asyncio.gather(*users))

    passed = sum(r.checks_passed for r in reports)
    total = sum(len(r.outcomes) for r in reports)
    errors = sum(r.transport_errors for r in reports)
    Console(stderr=True).print(
        f"[bold]{iterations}[/bold] iterations, checks {passed}/{total} passed, {errors} transport errors"
    )


if __name__ == "__main__":
    asyncio.run(main())
