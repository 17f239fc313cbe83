# Copyright (c) Syntropy Systems
"""Rich rendering shared by fitsim commands."""
from __future__ import annotations

import math
from typing import TYPE_CHECKING

from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from fitsim.results import ResultsTable


def format_duration(seconds: float | None) -> str:
    """Format duration in seconds to human readable."""
    if seconds is None:
        return "-"

    total = int(seconds)
    if total < 60:
        return f"{seconds:.1f}s"
    if total < 3600:
        m, s = divmod(total, 60)
        return f"{m}m {s}s"
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}h {m}m"


def format_statistic(value: float | None) -> str:
    """Format a fit statistic mean, NaN as a dash."""
    if value is None or math.isnan(value):
        return "[dim]-[/dim]"
    return f"{value:.3f}"


def show_results(console: Console, table: ResultsTable, title: str = "Results") -> None:
    """Print one row per condition with statistic means and failure counts."""
    statistics = table.statistic_names

    view = Table(title=title, show_header=True, header_style="bold")
    view.add_column("#", style="dim")
    view.add_column("N", justify="right")
    view.add_column("Model")
    view.add_column("Data")
    for name in statistics:
        view.add_column(name.upper(), justify="right")
    view.add_column("OK", justify="right")
    view.add_column("Failed", justify="right")

    for row in table:
        failed_style = "red" if row.failed else "dim"
        view.add_row(
            str(row.index),
            str(row.sample_size),
            row.model_type,
            row.data_type,
            *(format_statistic(row.statistics.get(name)) for name in statistics),
            f"{row.completed}/{row.replications}",
            f"[{failed_style}]{row.failed}[/{failed_style}]",
        )

    console.print(view)


def show_failure_report(console: Console, table: ResultsTable) -> None:
    """Summarize failed and retried replications and fully failed conditions."""
    failed = sum(row.failed for row in table)
    retries = sum(row.retries for row in table)
    warnings = sum(row.warnings for row in table)

    console.print(f"  [dim]failed replications:[/dim] {failed}")
    console.print(f"  [dim]retries:[/dim] {retries}")
    console.print(f"  [dim]warnings:[/dim] {warnings}")

    for row in table:
        if row.failed and not row.failed_condition:
            console.print(
                f"  [yellow]#{row.index}[/yellow] {row.condition.label}: "
                f"{row.failed} of {row.replications} replications failed"
            )

    failed_conditions = table.failed_conditions
    if failed_conditions:
        console.print(f"\n[red]{len(failed_conditions)} condition(s) fully failed:[/red]")
        for row in failed_conditions:
            console.print(f"  - #{row.index} {row.condition.label}")
