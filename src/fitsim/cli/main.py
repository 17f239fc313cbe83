# Copyright (c) Syntropy Systems
"""Main CLI entry point for fitsim."""

import typer

from fitsim.cli.clean import clean
from fitsim.cli.export import export
from fitsim.cli.init_cmd import init
from fitsim.cli.run import run
from fitsim.cli.status import status

app = typer.Typer(
    name="fitsim",
    help=(
        "Monte Carlo study of CFA fit statistics. Cross sample size, "
        "misspecification and non-normality; replicate, fit, summarize."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(run)
_ = app.command()(status)
_ = app.command(name="export")(export)
_ = app.command()(clean)


if __name__ == "__main__":
    app()
