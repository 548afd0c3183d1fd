"""``goldenami sync`` — reconcile the build history with EC2.

New images are ingested. Known images whose EC2 state moved on are
transitioned; transitions the state machine forbids are reported and
skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console

from goldenami.bridge.ec2 import Ec2ImageSource
from goldenami.cli.common import open_selector
from goldenami.config import config
from goldenami.errors import Ec2SourceError, InvalidTransitionError

console = Console()
logger = logging.getLogger(__name__)


def sync_cmd(
    region: str = typer.Option(
        None,
        "--region",
        "-r",
        help="AWS region to read (defaults to GOLDENAMI_AWS_REGION).",
    ),
    pattern: str = typer.Option(
        None,
        "--pattern",
        help="Image name filter (defaults to GOLDENAMI_NAME_PATTERN).",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Pull golden images owned by this account from EC2 into the history."""
    try:
        images = Ec2ImageSource(region=region or config.aws_region).list_images(
            pattern or config.name_pattern
        )
    except Ec2SourceError as exc:
        console.print(f"[bold red]AWS error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    selector = open_selector(db)
    added = updated = skipped = 0

    # Oldest first so arrival order matches creation order.
    for record in reversed(images):
        if record.id not in selector:
            try:
                selector.ingest(record)
            except InvalidTransitionError as exc:
                logger.warning("Skipping %s: %s", record.id, exc)
                skipped += 1
                continue
            added += 1
            continue

        current = selector.get(record.id)
        if current.state == record.state:
            continue
        try:
            selector.transition(record.id, record.state)
        except InvalidTransitionError as exc:
            logger.warning("Skipping %s: %s", record.id, exc)
            skipped += 1
            continue
        updated += 1

    console.print(
        f"[bold]{len(images)}[/bold] image(s) in EC2: "
        f"[green]{added} added[/green], [cyan]{updated} updated[/cyan], "
        f"[yellow]{skipped} skipped[/yellow]"
    )
