# Copyright (c) Syntropy Systems
"""fitsim init command."""

from pathlib import Path

import typer
from rich.console import Console

from fitsim.config import DIR_NAME, StudyConfig, write_config

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new fitsim study.

    Creates a .fitsim directory with the default study configuration.
    """
    target = path.resolve()
    fitsim_dir = target / DIR_NAME

    if fitsim_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {fitsim_dir}")
        return

    fitsim_dir.mkdir(parents=True)

    config_path = fitsim_dir / "config.yaml"
    write_config(StudyConfig(), config_path)

    console.print(f"[green]Initialized fitsim study:[/green] {fitsim_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
    console.print("\nEdit the config, then run: [cyan]fitsim run[/cyan]")
