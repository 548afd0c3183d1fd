"""``goldenami record-build`` — record a finished Packer build.

Reads the AMI id from Packer's ``manifest.json``, writes
``last-build-<env>.json`` and ingests the image as pending. Once the image
is available, ``goldenami transition AMI_ID available`` (or ``sync``)
promotes it.
"""

from __future__ import annotations

import getpass
from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console

from goldenami.cli.common import open_selector
from goldenami.config import config
from goldenami.core.build_records import (
    latest_artifact,
    latest_build,
    load_manifest,
    new_build_id,
    write_last_build,
)
from goldenami.errors import DuplicateImageError, ManifestError
from goldenami.models.builds import LastBuildInfo
from goldenami.models.images import ImageRecord, ImageState

console = Console()


def _build_user() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "unknown"


def record_build_cmd(
    manifest: Path = typer.Option(
        Path("packer/manifest.json"),
        "--manifest",
        "-m",
        help="Path to the Packer manifest.json.",
    ),
    env: str = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment the image was built for (defaults to GOLDENAMI_ENVIRONMENT).",
    ),
    build_id: str = typer.Option(
        None,
        "--build-id",
        help="Build id to record. Generated when omitted.",
    ),
    name: str = typer.Option(
        "",
        "--name",
        help="Image name, e.g. golden-ami-ubuntu-22.04-<build id>.",
    ),
    log_file: str = typer.Option(
        "",
        "--log-file",
        help="Path of the build log to reference in the snapshot.",
    ),
    log_dir: Path = typer.Option(
        None,
        "--log-dir",
        help="Directory for last-build-<env>.json (defaults to GOLDENAMI_LOG_DIR).",
    ),
    db: Path = typer.Option(
        None,
        "--db",
        help="Path to the image history database.",
    ),
) -> None:
    """Record the image produced by the last Packer build."""
    environment = env or config.environment

    try:
        packer_manifest = load_manifest(manifest)
        region, ami_id = latest_artifact(packer_manifest)
    except ManifestError as exc:
        console.print(f"[bold red]ERROR:[/bold red] {exc}")
        raise typer.Exit(code=1)

    build = latest_build(packer_manifest)
    custom = dict(build.custom_data or {})
    now = datetime.now(timezone.utc)

    info = LastBuildInfo(
        build_id=build_id or new_build_id(now),
        ami_id=ami_id,
        region=region,
        environment=environment,
        build_time=now,
        build_user=_build_user(),
        log_file=log_file,
    )
    path = write_last_build(log_dir or config.log_dir, info)
    console.print(f"[green]New AMI created:[/green] {ami_id} in region {region}")
    console.print(f"[dim]Build info saved to {path}[/dim]")

    ami_label = custom.pop("ami_name", "")
    tags = {**custom, "Environment": environment}
    record = ImageRecord(
        id=ami_id,
        name=name or ami_label,
        region=region,
        state=ImageState.PENDING,
        created_at=now,
        tags=tags,
    )
    try:
        open_selector(db).ingest(record)
    except DuplicateImageError:
        console.print(f"[yellow]WARNING:[/yellow] {ami_id} already recorded")
        return

    console.print(f"[green]Recorded[/green] {ami_id} as pending for {environment!r}")
