# Copyright (c) Syntropy Systems
"""fitsim status command."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from fitsim.cli.display import format_duration
from fitsim.config import get_state_path, require_fitsim_dir
from fitsim.errors import ResumeStateError
from fitsim.models.state import ConditionStatus, SimulationState

console = Console()


def status() -> None:
    """Show per-condition progress of the saved simulation state."""
    try:
        fitsim_dir = require_fitsim_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    state_path = get_state_path(fitsim_dir)
    if not state_path.exists():
        console.print("[dim]No simulation state. Start with 'fitsim run'.[/dim]")
        return

    try:
        state = SimulationState.load(state_path)
    except ResumeStateError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    done, total = state.progress
    settings = state.settings
    console.print(f"\n[bold]Simulation state[/bold] {state_path}")
    console.print(f"  [dim]progress:[/dim] {done}/{total} conditions")
    console.print(f"  [dim]replications:[/dim] {settings.replications}")
    console.print(f"  [dim]base seed:[/dim] {settings.base_seed}")
    console.print(f"  [dim]max retries:[/dim] {settings.max_retries}")
    if state.updated_at:
        console.print(f"  [dim]updated:[/dim] {state.updated_at}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim")
    table.add_column("N", justify="right")
    table.add_column("Model")
    table.add_column("Data")
    table.add_column("Status")
    table.add_column("Seed", style="dim")
    table.add_column("Elapsed", justify="right")
    table.add_column("OK", justify="right")
    table.add_column("Failed", justify="right")

    for record in state.conditions:
        summary = record.summary
        if record.status is ConditionStatus.COMPLETED:
            status_text = (
                "[red]failed[/red]"
                if summary is not None and summary.failed_condition
                else "[green]completed[/green]"
            )
        else:
            status_text = "[yellow]pending[/yellow]"

        table.add_row(
            str(record.index),
            str(record.sample_size),
            record.model_type,
            record.data_type,
            status_text,
            str(record.seed),
            format_duration(record.elapsed_seconds),
            str(summary.completed) if summary else "-",
            str(summary.failed) if summary else "-",
        )

    console.print(table)
