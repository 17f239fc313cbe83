# Copyright (c) Syntropy Systems
"""Export command - export the results table to CSV/JSON."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from fitsim.config import get_state_path, require_fitsim_dir
from fitsim.errors import ResumeStateError
from fitsim.models.state import SimulationState
from fitsim.results import ResultsTable

console = Console()


def export(
    output: Path = typer.Argument(..., help="Output file path (.csv or .json)"),
    long: bool = typer.Option(
        False, "--long", "-l", help="One row per condition and fit statistic"
    ),
) -> None:
    """Export completed conditions from the saved state.

    Examples:
        fitsim export results.csv
        fitsim export results-long.csv --long

    """
    try:
        fitsim_dir = require_fitsim_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    suffix = output.suffix.lower()
    if suffix not in [".csv", ".json"]:
        console.print("[red]Output must be .csv or .json[/red]")
        raise typer.Exit(1)

    state_path = get_state_path(fitsim_dir)
    if not state_path.exists():
        console.print("[yellow]No results to export[/yellow]")
        raise typer.Exit(0)

    try:
        state = SimulationState.load(state_path)
    except ResumeStateError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    summaries = state.completed_summaries()
    if not summaries:
        console.print("[yellow]No completed conditions to export[/yellow]")
        raise typer.Exit(0)

    done, total = state.progress
    if done < total:
        console.print(
            f"[yellow]Warning: only {done} of {total} conditions are completed[/yellow]"
        )

    table = ResultsTable(rows=tuple(summaries[index] for index in sorted(summaries)))
    table.export(output, long=long)

    console.print(f"[green]Exported {len(table)} condition(s) to {output}[/green]")
