# Copyright (c) Syntropy Systems
"""fitsim clean command."""
from __future__ import annotations

import typer
from rich.console import Console

from fitsim.config import get_state_path, require_fitsim_dir

console = Console()


def clean(
    force: bool = typer.Option(
        False,
        "--force", "-f",
        help="Don't ask for confirmation",
    ),
) -> None:
    """Discard the saved simulation state.

    The next 'fitsim run' starts from the first condition.
    """
    try:
        fitsim_dir = require_fitsim_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    state_path = get_state_path(fitsim_dir)
    if not state_path.exists():
        console.print("[dim]Nothing to clean[/dim]")
        return

    if not force and not typer.confirm(f"Delete {state_path}?"):
        console.print("[dim]Cancelled[/dim]")
        return

    state_path.unlink()
    console.print(f"[green]Removed[/green] {state_path}")
