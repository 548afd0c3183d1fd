"""End-to-end integration tests — a golden image from Packer build to deployment.

These tests exercise the build records, ImageHistoryStore, ImageSelector,
validator and CLI working together against one on-disk history.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from goldenami.cli.app import app
from goldenami.core.build_records import ami_name, new_build_id, read_last_build
from goldenami.core.history_store import ImageHistoryStore
from goldenami.core.selector import ImageSelector
from goldenami.core.validator import validate
from goldenami.errors import ImageNotFoundError
from goldenami.models.images import ImageState
from goldenami.models.validation import ValidationPolicy

runner = CliRunner()


def _write_manifest(path: Path, ami_id: str, build_id: str) -> Path:
    path.write_text(
        json.dumps(
            {
                "builds": [
                    {
                        "name": "golden-ami",
                        "builder_type": "amazon-ebs",
                        "build_time": 1748779200,
                        "artifact_id": f"us-east-1:{ami_id}",
                        "packer_run_uuid": build_id,
                        "custom_data": {
                            "ami_name": ami_name("ubuntu", "22.04", build_id),
                            "Purpose": "golden-ami",
                            "OS": "ubuntu",
                            "OSVersion": "22.04",
                        },
                    }
                ],
                "last_run_uuid": build_id,
            }
        ),
        encoding="utf-8",
    )
    return path


class TestBuildLifecycle:
    @pytest.fixture
    def workspace(self, tmp_path: Path) -> dict[str, Path]:
        return {
            "db": tmp_path / "state" / "images.db",
            "logs": tmp_path / "logs",
            "manifest": tmp_path / "manifest.json",
        }

    def _record_build(self, workspace: dict[str, Path], ami_id: str, env: str = "staging"):
        build_id = new_build_id()
        _write_manifest(workspace["manifest"], ami_id, build_id)
        result = runner.invoke(
            app,
            [
                "record-build",
                "--manifest", str(workspace["manifest"]),
                "--env", env,
                "--build-id", build_id,
                "--log-dir", str(workspace["logs"]),
                "--db", str(workspace["db"]),
            ],
        )
        assert result.exit_code == 0, result.output
        return build_id

    def test_build_promote_select(self, workspace):
        build_id = self._record_build(workspace, "ami-0aaa")

        # pending images are never selected
        latest = runner.invoke(app, ["latest", "-e", "staging", "--db", str(workspace["db"])])
        assert latest.exit_code == 1

        promote = runner.invoke(
            app, ["transition", "ami-0aaa", "available", "--db", str(workspace["db"])]
        )
        assert promote.exit_code == 0, promote.output

        latest = runner.invoke(app, ["latest", "-e", "staging", "--db", str(workspace["db"])])
        assert latest.exit_code == 0
        assert latest.stdout.strip() == "ami-0aaa"

        record = ImageSelector(ImageHistoryStore(workspace["db"])).get("ami-0aaa")
        assert record.name_parts().build_id == build_id
        assert read_last_build(workspace["logs"], "staging").ami_id == "ami-0aaa"

    def test_rollout_and_rollback(self, workspace):
        for ami_id in ("ami-0aaa", "ami-0bbb"):
            self._record_build(workspace, ami_id)
            runner.invoke(app, ["transition", ami_id, "available", "--db", str(workspace["db"])])

        selector = ImageSelector(ImageHistoryStore(workspace["db"]))
        assert selector.get_latest_valid("staging").id == "ami-0bbb"

        # the newer image turns out to be bad: deregister rolls back to the previous one
        result = runner.invoke(app, ["deregister", "ami-0bbb", "--db", str(workspace["db"])])
        assert result.exit_code == 0, result.output

        selector = ImageSelector(ImageHistoryStore(workspace["db"]))
        assert selector.get_latest_valid("staging").id == "ami-0aaa"
        assert [r.id for r in selector.history("staging")] == ["ami-0aaa", "ami-0bbb"]

    def test_failed_build_never_selected(self, workspace):
        self._record_build(workspace, "ami-0bad")
        runner.invoke(app, ["transition", "ami-0bad", "failed", "--db", str(workspace["db"])])

        selector = ImageSelector(ImageHistoryStore(workspace["db"]))
        with pytest.raises(ImageNotFoundError):
            selector.get_latest_valid("staging")
        assert [e.to_state for e in ImageHistoryStore(workspace["db"]).get_events("ami-0bad")] == [
            "pending",
            "failed",
        ]

    def test_environments_do_not_leak(self, workspace):
        self._record_build(workspace, "ami-0stg", env="staging")
        self._record_build(workspace, "ami-0prd", env="production")
        for ami_id in ("ami-0stg", "ami-0prd"):
            runner.invoke(app, ["transition", ami_id, "available", "--db", str(workspace["db"])])

        selector = ImageSelector(ImageHistoryStore(workspace["db"]))
        assert selector.get_latest_valid("staging").id == "ami-0stg"
        assert selector.get_latest_valid("production").id == "ami-0prd"
        assert selector.environments() == ["production", "staging"]

    def test_age_policy_on_promoted_image(self, workspace):
        self._record_build(workspace, "ami-0aaa")
        runner.invoke(app, ["transition", "ami-0aaa", "available", "--db", str(workspace["db"])])

        selector = ImageSelector(ImageHistoryStore(workspace["db"]))
        record = selector.get("ami-0aaa")
        policy = ValidationPolicy(max_age=timedelta(days=30))
        assert selector.validate(record, policy).passed

        later = datetime.now(timezone.utc) + timedelta(days=31)
        assert validate(record, policy, now=later).failures_of("too_old")

    def test_image_state_after_restart(self, workspace):
        self._record_build(workspace, "ami-0aaa")
        assert (
            ImageSelector(ImageHistoryStore(workspace["db"])).get("ami-0aaa").state
            == ImageState.PENDING
        )
