"""``goldenami latest --env ENV`` — print the latest valid golden image."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from goldenami.cli.common import open_selector
from goldenami.config import config
from goldenami.errors import ImageNotFoundError

console = Console()


def latest_cmd(
    env: str = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment to select for (defaults to GOLDENAMI_ENVIRONMENT).",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the full record as JSON instead of the bare image id.",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Print the newest valid image for an environment.

    The bare id on stdout is meant for scripts and deployment tooling.
    """
    environment = env or config.environment
    selector = open_selector(db)
    try:
        record = selector.get_latest_valid(environment)
    except ImageNotFoundError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        console.print("[dim]Ingest a build first with: goldenami ingest[/dim]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(record.model_dump_json(indent=2))
    else:
        typer.echo(record.id)
