# Copyright (c) Syntropy Systems
"""fitsim run command."""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fitsim.cli.display import format_duration, show_failure_report, show_results
from fitsim.config import (
    get_results_path,
    get_state_path,
    load_config,
    require_fitsim_dir,
)
from fitsim.engine import Parallelism
from fitsim.errors import ConfigurationError, ResumeStateError
from fitsim.study import build_study_grid, create_engine

if TYPE_CHECKING:
    from fitsim.models.results import ConditionSummary

console = Console()


def _print_progress(summary: ConditionSummary, done: int, total: int) -> None:
    status = "[red]failed[/red]" if summary.failed_condition else "[green]done[/green]"
    console.print(
        f"  [dim]{done}/{total}[/dim] #{summary.index} {summary.condition.label} "
        f"{status} ok={summary.completed} failed={summary.failed} "
        f"[dim]({format_duration(summary.elapsed_seconds)})[/dim]"
    )


def run(
    resume: bool = typer.Option(
        False,
        "--resume/--clean",
        help="Continue from saved state, or discard it and start over",
    ),
    parallel: bool = typer.Option(
        False,
        "--parallel",
        help="Run conditions in a process pool (overrides config)",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers", "-w",
        help="Worker processes for parallel runs",
    ),
    replications: int | None = typer.Option(
        None,
        "--replications", "-r",
        help="Replications per condition (overrides config)",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Base seed (overrides config)",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        help="Retries per failed replication (overrides config)",
    ),
    output: Path | None = typer.Option(
        None,
        "--output", "-o",
        help="Results file (.csv or .json, default: .fitsim/results.csv)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run", "-n",
        help="Show the condition grid without running it",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log per-condition replication details",
    ),
) -> None:
    """Run the full condition grid.

    Each condition is replicated, fitted and summarized; progress is saved
    after every condition so an interrupted study can continue with
    --resume.
    """
    try:
        fitsim_dir = require_fitsim_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    try:
        config = load_config(fitsim_dir)
        overrides: dict[str, object] = {}
        if parallel:
            overrides["parallelism"] = Parallelism.CONDITIONS.value
        if workers is not None:
            overrides["max_workers"] = workers
        if replications is not None:
            overrides["replications"] = replications
        if seed is not None:
            overrides["base_seed"] = seed
        if retries is not None:
            overrides["max_retries"] = retries
        config = replace(config, **overrides)
        grid = build_study_grid(config)
    except ConfigurationError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title="Condition grid")
    table.add_column("#", style="dim")
    table.add_column("N", justify="right")
    table.add_column("Model")
    table.add_column("Data")
    table.add_column("Seed", style="dim")
    for index, condition in enumerate(grid):
        table.add_row(
            str(index),
            str(condition.sample_size),
            condition.model_type.value,
            condition.data_type.value,
            str(config.base_seed + index),
        )
    console.print(table)
    console.print(
        f"\n[bold]{len(grid)} conditions[/bold] x {config.replications} replications"
    )
    console.print(f"  [dim]parallelism:[/dim] {config.parallelism}")
    console.print(f"  [dim]max retries:[/dim] {config.max_retries}")

    if dry_run:
        console.print("\n[yellow]Dry run - nothing executed[/yellow]")
        return

    state_path = get_state_path(fitsim_dir)
    results_path = output or get_results_path(fitsim_dir)

    try:
        engine = create_engine(config, state_path=state_path, on_condition=_print_progress)
        console.print()
        results = engine.run(grid, config.replications, resume=resume)
    except ResumeStateError as e:
        console.print(f"[red]Cannot resume:[/red] {e}")
        console.print("Start over with: [cyan]fitsim run --clean[/cyan]")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e
    except KeyboardInterrupt as e:
        console.print("\n[yellow]Interrupted - completed conditions were saved[/yellow]")
        console.print("Continue with: [cyan]fitsim run --resume[/cyan]")
        raise typer.Exit(130) from e

    console.print()
    show_results(console, results)
    show_failure_report(console, results)

    try:
        results.export(results_path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"\n[green]Results written to {results_path}[/green]")
