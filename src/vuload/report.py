"""Terminal rendering of iteration reports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from vuload.engine.iteration import IterationReport


def _checks_table(report: IterationReport) -> Table:
    table = Table(
        title=f"Checks ({report.checks_passed}/{len(report.outcomes)} passed)",
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    table.add_column("", width=1)
    table.add_column("Check", style="bold")
    table.add_column("Result", justify="right")
    table.add_column("Detail")

    for outcome in report.outcomes:
        mark = "[green]✓[/green]" if outcome.passed else "[red]✗[/red]"
        index = "-" if outcome.request_index is None else str(outcome.request_index)
        table.add_row(mark, outcome.name, index, outcome.error or "")
    return table


def _requests_table(report: IterationReport) -> Table:
    table = Table(
        title=f"Iteration {report.iteration} ({report.duration * 1000:.1f}ms)",
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    table.add_column("#", justify="right")
    table.add_column("Method")
    table.add_column("URL")
    table.add_column("Status", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Tags")

    for result in report.results:
        if result.error is not None:
            status = f"[red]{result.error.kind.value}[/red]"
        elif result.ok:
            status = f"[green]{result.status}[/green]"
        else:
            status = f"[yellow]{result.status}[/yellow]"
        tags = ", ".join(f"{k}={v}" for k, v in sorted(result.tags.items()))
        table.add_row(
            str(result.request_index),
            result.method.value,
            result.url,
            status,
            f"{result.duration_ms:.1f}ms",
            tags,
        )
    return table


def render_report(report: IterationReport, console: Console | None = None) -> None:
    """Print the request and check tables of one iteration.

    Args:
        report: The iteration to render.
        console: Target console. Defaults to a stderr console.
    """
    console = console or Console(stderr=True)
    console.print(_requests_table(report))
    if report.outcomes:
        console.print(_checks_table(report))
