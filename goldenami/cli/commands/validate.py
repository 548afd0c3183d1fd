"""``goldenami validate AMI_ID`` — check an image against the validation policy.

Reports every violated rule at once. Missing tags can be downgraded to
warnings; a wrong state or an image that is too old always fails.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import typer
from rich.console import Console

from goldenami.bridge.ec2 import Ec2ImageSource
from goldenami.cli.common import open_selector
from goldenami.config import config
from goldenami.core.validator import validate
from goldenami.errors import Ec2SourceError, ImageNotFoundError
from goldenami.models.images import ImageRecord, ImageState
from goldenami.models.validation import ValidationPolicy
from goldenami.monitor.renderer import ImageRenderer

console = Console()


def _fetch_from_ec2(ami_id: str, region: str) -> ImageRecord:
    source = Ec2ImageSource(region=region)
    record = source.describe_image(ami_id)

    permissions = source.launch_permissions(ami_id)
    if permissions:
        console.print("[yellow]WARNING:[/yellow] AMI has additional launch permissions:")
        for grant in permissions:
            console.print(f"  {grant}")
    else:
        console.print("[dim]AMI is private (no additional launch permissions)[/dim]")
    return record


def validate_cmd(
    ami_id: str = typer.Argument(..., help="The image id to validate."),
    require_tag: list[str] = typer.Option(
        None,
        "--require-tag",
        "-t",
        help="Required tag (repeatable). Defaults to GOLDENAMI_REQUIRED_TAGS.",
    ),
    state: ImageState = typer.Option(
        ImageState.AVAILABLE,
        "--state",
        help="State the image must be in.",
    ),
    max_age_days: int = typer.Option(
        None,
        "--max-age-days",
        help="Fail images older than this many days.",
    ),
    warn_missing_tags: bool = typer.Option(
        False,
        "--warn-missing-tags",
        help="Report missing tags as warnings instead of failures.",
    ),
    ec2: bool = typer.Option(
        False,
        "--ec2",
        help="Look the image up in EC2 instead of the local history.",
    ),
    region: str = typer.Option(
        None,
        "--region",
        help="AWS region for --ec2 (defaults to GOLDENAMI_AWS_REGION).",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Validate an image and exit non-zero if any fatal rule is violated."""
    max_days = max_age_days if max_age_days is not None else config.max_age_days
    policy = ValidationPolicy(
        required_tags=frozenset(require_tag or config.required_tags),
        required_state=state,
        max_age=timedelta(days=max_days) if max_days is not None else None,
    )

    try:
        if ec2:
            record = _fetch_from_ec2(ami_id, region or config.aws_region)
        else:
            record = open_selector(db).get(ami_id)
    except ImageNotFoundError as exc:
        console.print(f"[bold red]ERROR:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except Ec2SourceError as exc:
        console.print(f"[bold red]AWS error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    renderer = ImageRenderer(console=console)
    renderer.console.print(renderer.render_record(record))

    result = validate(record, policy)
    warning_kinds = frozenset({"missing_tag"}) if warn_missing_tags else frozenset()
    renderer.print_validation(result, warning_kinds=warning_kinds)

    if any(f.kind not in warning_kinds for f in result.failures):
        raise typer.Exit(code=1)
