"""Build bookkeeping models: Packer manifests and last-build snapshots."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LastBuildInfo(BaseModel):
    """Snapshot of the most recent build for one environment.

    Serialized as ``last-build-<env>.json`` with exactly these keys, so
    existing tooling that reads the file keeps working.
    """

    model_config = ConfigDict(frozen=True)

    build_id: str
    ami_id: str
    region: str
    environment: str
    build_time: datetime
    build_user: str
    log_file: str = ""


class PackerBuild(BaseModel):
    """One entry of ``builds`` in a Packer ``manifest.json``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    builder_type: str = ""
    build_time: int = 0
    artifact_id: str
    packer_run_uuid: str = ""
    custom_data: dict[str, str] | None = None


class PackerManifest(BaseModel):
    """Typed view of the Packer manifest post-processor output."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    builds: list[PackerBuild] = Field(default_factory=list)
    last_run_uuid: str = ""
