#!/usr/bin/env python3
"""
pgbackup - docker-pg-backup

Dumps a PostgreSQL database running in a container, gzips the stream and
uploads it to an S3-compatible bucket under a timestamped key.
"""

import typer
from rich.console import Console

from . import __version__
from .commands import config
from .commands.run import run_backup

app = typer.Typer(
    help="docker-pg-backup - dump a containerised PostgreSQL database, gzip it and upload it to S3.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

app.command("run")(run_backup)
app.add_typer(config.app, name="config")


@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"pgbackup version: {__version__}")
    raise typer.Exit()


if __name__ == "__main__":
    app()
