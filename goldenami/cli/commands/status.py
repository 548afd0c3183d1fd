"""``goldenami status --env ENV`` — show the last recorded build."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from goldenami.config import config
from goldenami.core.build_records import read_last_build, tail_build_log
from goldenami.errors import LastBuildNotFoundError
from goldenami.monitor.renderer import ImageRenderer

console = Console()


def status_cmd(
    env: str = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment to show (defaults to GOLDENAMI_ENVIRONMENT).",
    ),
    log_dir: Path = typer.Option(
        None,
        "--log-dir",
        help="Directory holding last-build-<env>.json (defaults to GOLDENAMI_LOG_DIR).",
    ),
    tail: int = typer.Option(
        0,
        "--tail",
        "-n",
        min=0,
        help="Also print the last N lines of the build log named in the snapshot.",
    ),
) -> None:
    """Show the status of the last build for an environment."""
    environment = env or config.environment
    try:
        info = read_last_build(log_dir or config.log_dir, environment)
    except LastBuildNotFoundError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        console.print("[dim]Record a build first with: goldenami record-build[/dim]")
        raise typer.Exit(code=1)

    ImageRenderer(console=console).print_last_build(info)

    if not tail:
        return
    if not info.log_file:
        console.print("[yellow]No build log recorded for this build[/yellow]")
        return

    console.print(f"\n[bold]Latest build log for {environment}:[/bold] {info.log_file}")
    try:
        lines = tail_build_log(Path(info.log_file), tail)
    except OSError:
        console.print("[yellow]Log file not found[/yellow]")
        return
    for line in lines:
        console.print(escape(line), highlight=False)
