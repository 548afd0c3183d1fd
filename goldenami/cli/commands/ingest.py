"""``goldenami ingest FILE`` — add image records reported by a build producer.

Accepts a JSON object, a JSON array of objects, or JSON lines. ``-`` reads
from stdin.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from goldenami.cli.common import open_selector
from goldenami.errors import DuplicateImageError, InvalidTransitionError
from goldenami.models.images import ImageRecord

console = Console()


def _parse_payload(text: str) -> list[Any]:
    """Decode a JSON document or, failing that, JSON lines."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    return payload if isinstance(payload, list) else [payload]


def ingest_cmd(
    source: str = typer.Argument(
        ...,
        help="Path to a JSON / JSON-lines file of image records, or '-' for stdin.",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Ingest image records into the build history.

    Duplicate ids are reported as warnings; malformed records are errors.
    """
    path = Path(source)
    if source != "-" and not path.is_file():
        console.print(f"[bold red]File not found:[/bold red] {source}")
        raise typer.Exit(code=1)

    try:
        if source == "-":
            text = typer.get_text_stream("stdin").read()
        else:
            text = path.read_text(encoding="utf-8")
        items = _parse_payload(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Invalid JSON:[/bold red] {exc}")
        raise typer.Exit(code=1)

    selector = open_selector(db)
    ingested = duplicates = errors = 0

    for item in items:
        try:
            record = ImageRecord.model_validate(item)
        except ValidationError as exc:
            console.print(f"[bold red]Rejected malformed record:[/bold red] {exc}")
            errors += 1
            continue

        try:
            receipt = selector.ingest(record)
        except DuplicateImageError:
            console.print(f"[yellow]WARNING:[/yellow] {record.id} already recorded, skipped")
            duplicates += 1
            continue
        except InvalidTransitionError as exc:
            console.print(f"[bold red]ERROR:[/bold red] {exc}")
            errors += 1
            continue

        ingested += 1
        note = " [yellow](out of order)[/yellow]" if receipt.out_of_order else ""
        console.print(
            f"[green]Ingested[/green] {record.id} "
            f"[dim]({record.state.value}, {receipt.environment or 'no environment'})[/dim]{note}"
        )

    console.print(
        f"[bold]{ingested}[/bold] ingested, [bold]{duplicates}[/bold] duplicate(s), "
        f"[bold]{errors}[/bold] error(s)"
    )
    if errors:
        raise typer.Exit(code=1)
