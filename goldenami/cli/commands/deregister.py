"""``goldenami deregister`` / ``goldenami transition`` — image state changes.

Both go through the selector's state machine; an invalid transition is
reported and leaves the image untouched.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from goldenami.cli.common import open_selector
from goldenami.errors import ImageNotFoundError, InvalidTransitionError
from goldenami.models.images import ImageState

console = Console()


def _apply(ami_id: str, target: ImageState, db: Path | None) -> None:
    selector = open_selector(db)
    try:
        previous = selector.get(ami_id).state
        record = selector.transition(ami_id, target)
    except ImageNotFoundError as exc:
        console.print(f"[bold red]Not found:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except InvalidTransitionError as exc:
        console.print(f"[bold red]Invalid transition:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(
        f"[green]{record.id}[/green]: {previous.value} -> [bold]{record.state.value}[/bold]"
    )


def deregister_cmd(
    ami_id: str = typer.Argument(..., help="The image id to deregister."),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Mark an available image as deregistered. It remains in history."""
    _apply(ami_id, ImageState.DEREGISTERED, db)


def transition_cmd(
    ami_id: str = typer.Argument(..., help="The image id to update."),
    state: ImageState = typer.Argument(..., help="The new state."),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Record a later state reported by the build producer (e.g. pending -> available)."""
    _apply(ami_id, state, db)
