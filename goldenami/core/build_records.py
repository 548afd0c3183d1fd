"""Build bookkeeping: build ids, image names, Packer manifests, last-build files.

Packer writes ``manifest.json`` after a successful build; the AMI id lives
in ``builds[].artifact_id`` as ``"<region>:<ami-id>"`` (comma-separated
when copied to several regions). The last build of each environment is
recorded as ``last-build-<env>.json``.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from goldenami.errors import LastBuildNotFoundError, ManifestError
from goldenami.models.builds import LastBuildInfo, PackerBuild, PackerManifest

logger = logging.getLogger(__name__)

AMI_NAME_PREFIX = "golden-ami"


def new_build_id(now: datetime | None = None) -> str:
    """Return a unique build id: ``YYYYmmdd-HHMMSS-<8 hex>``."""
    ts = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return f"{ts}-{uuid.uuid4().hex[:8]}"


def ami_name(os_name: str, os_version: str, build_id: str) -> str:
    """Return the golden image name for a build."""
    return f"{AMI_NAME_PREFIX}-{os_name}-{os_version}-{build_id}"


# ---------------------------------------------------------------------------
# Packer manifest
# ---------------------------------------------------------------------------


def load_manifest(path: Path) -> PackerManifest:
    """Read and validate a Packer ``manifest.json``."""
    path = Path(path)
    if not path.is_file():
        raise ManifestError(f"Manifest file not found: {path}")
    try:
        manifest = PackerManifest.model_validate_json(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, ValidationError) as exc:
        raise ManifestError(f"Malformed manifest {path}: {exc}") from exc
    if not manifest.builds:
        raise ManifestError(f"Manifest {path} contains no builds")
    return manifest


def latest_build(manifest: PackerManifest) -> PackerBuild:
    """Return the build from the manifest's most recent Packer run."""
    if not manifest.builds:
        raise ManifestError("Manifest contains no builds")
    if manifest.last_run_uuid:
        for build in reversed(manifest.builds):
            if build.packer_run_uuid == manifest.last_run_uuid:
                return build
    return manifest.builds[-1]


def parse_artifact_id(artifact_id: str) -> list[tuple[str, str]]:
    """Split ``"us-east-1:ami-1,us-west-2:ami-2"`` into (region, ami_id) pairs."""
    pairs: list[tuple[str, str]] = []
    for part in artifact_id.split(","):
        region, sep, ami_id = part.strip().partition(":")
        if not sep or not region or not ami_id.startswith("ami-"):
            raise ManifestError(f"Malformed artifact id: {artifact_id!r}")
        pairs.append((region, ami_id))
    return pairs


def latest_artifact(manifest: PackerManifest) -> tuple[str, str]:
    """Return ``(region, ami_id)`` of the first artifact of the latest build."""
    return parse_artifact_id(latest_build(manifest).artifact_id)[0]


# ---------------------------------------------------------------------------
# last-build-<env>.json
# ---------------------------------------------------------------------------


def last_build_path(log_dir: Path, environment: str) -> Path:
    return Path(log_dir) / f"last-build-{environment}.json"


def write_last_build(log_dir: Path, info: LastBuildInfo) -> Path:
    """Write the last-build snapshot for ``info.environment``."""
    path = last_build_path(log_dir, info.environment)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = info.model_dump(mode="json")
    payload["build_time"] = info.build_time.astimezone(timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.info("Recorded build %s for %r in %s", info.build_id, info.environment, path)
    return path


def read_last_build(log_dir: Path, environment: str) -> LastBuildInfo:
    """Read the last-build snapshot for ``environment``."""
    path = last_build_path(log_dir, environment)
    if not path.is_file():
        raise LastBuildNotFoundError(f"No build found for environment {environment!r}")
    try:
        return LastBuildInfo.model_validate_json(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, ValidationError) as exc:
        raise LastBuildNotFoundError(f"Unreadable build snapshot {path}: {exc}") from exc


def tail_build_log(log_file: Path, lines: int = 50) -> list[str]:
    """Return the last ``lines`` lines of a build log.

    Raises OSError (usually FileNotFoundError) when the log cannot be read.
    """
    with Path(log_file).open(encoding="utf-8", errors="replace") as fh:
        return [line.rstrip("\n") for line in deque(fh, maxlen=lines)]
