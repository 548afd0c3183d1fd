"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
GOLDENAMI_* environment variables.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from goldenami.models.images import REQUIRED_TAGS, ImageState
from goldenami.models.validation import ValidationPolicy


class GoldenAmiConfig(BaseSettings):
    """Configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export GOLDENAMI_ENVIRONMENT=staging
        export GOLDENAMI_LOG_LEVEL=DEBUG
        export GOLDENAMI_HISTORY_PATH=/data/images.db

    Or via .env file::

        GOLDENAMI_AWS_REGION=us-west-2
        GOLDENAMI_MAX_AGE_DAYS=90
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GOLDENAMI_",
        env_file_encoding="utf-8",
    )

    # Deployment tier used when a command is not given --env
    environment: str = "production"
    log_level: str = "INFO"

    # Storage paths
    history_path: Path = Path(".goldenami/images.db")
    log_dir: Path = Path("logs")

    # AWS
    aws_region: str = "us-east-1"
    name_pattern: str = "golden-ami-*"

    # Validation policy defaults
    required_tags: list[str] = list(REQUIRED_TAGS)
    max_age_days: int | None = None

    def default_policy(self) -> ValidationPolicy:
        """Build the ValidationPolicy described by this configuration."""
        return ValidationPolicy(
            required_tags=frozenset(self.required_tags),
            required_state=ImageState.AVAILABLE,
            max_age=(
                timedelta(days=self.max_age_days) if self.max_age_days is not None else None
            ),
        )


# Module-level singleton, import as `from goldenami.config import config`
config = GoldenAmiConfig()
