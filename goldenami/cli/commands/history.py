"""``goldenami history --env ENV`` — show an environment's build history."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from goldenami.cli.common import open_selector
from goldenami.config import config
from goldenami.errors import ImageNotFoundError
from goldenami.monitor.renderer import ImageRenderer

console = Console()


def history_cmd(
    env: str = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment to show (defaults to GOLDENAMI_ENVIRONMENT).",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Show every recorded image for an environment, newest first."""
    environment = env or config.environment
    selector = open_selector(db)

    records = selector.history(environment)
    if not records:
        console.print(f"[yellow]No images recorded for environment {environment!r}[/yellow]")
        known = selector.environments()
        if known:
            console.print("\n[bold]Known environments:[/bold]")
            for name in known:
                console.print(f"  [cyan]{name or '(untagged)'}[/cyan]")
        raise typer.Exit(code=1)

    try:
        latest_id = selector.get_latest_valid(environment).id
    except ImageNotFoundError:
        latest_id = None

    ImageRenderer(console=console).print_history(environment, records, latest_id)
