"""Image record models and the image state machine table."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ImageState(str, Enum):
    """Lifecycle state of a built machine image."""

    PENDING = "pending"
    AVAILABLE = "available"
    FAILED = "failed"
    DEREGISTERED = "deregistered"


# Valid state transitions, enforced by goldenami.core.state_machine.
# FAILED and DEREGISTERED are terminal.
VALID_TRANSITIONS: dict[ImageState, set[ImageState]] = {
    ImageState.PENDING: {ImageState.AVAILABLE, ImageState.FAILED},
    ImageState.AVAILABLE: {ImageState.DEREGISTERED},
    ImageState.FAILED: set(),
    ImageState.DEREGISTERED: set(),
}

# States an image may be in the first time it is ingested.
INITIAL_STATES: frozenset[ImageState] = frozenset(
    {ImageState.PENDING, ImageState.AVAILABLE, ImageState.FAILED}
)

REQUIRED_TAGS: tuple[str, ...] = ("Environment", "Purpose", "OS", "OSVersion")

ENVIRONMENT_TAG = "Environment"

# golden-ami-<os>-<version>-<buildid>, e.g. golden-ami-ubuntu-22.04-20250101-120000-1a2b3c4d
_NAME_RE = re.compile(
    r"^golden-ami-(?P<os>[a-z0-9]+)-(?P<version>[0-9][0-9.]*)-(?P<build_id>.+)$"
)


class ImageName(BaseModel):
    """The parts of a golden image name."""

    model_config = ConfigDict(frozen=True)

    os: str
    version: str
    build_id: str


class ImageRecord(BaseModel):
    """One built machine image, as reported by the build producer.

    Records are immutable, ``tags`` included (a read-only mapping). A state
    change produces a new record via ``model_copy``; ``id`` and
    ``created_at`` never change.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    region: str = ""
    state: ImageState = ImageState.PENDING
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    tags: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("image id must not be blank")
        return value

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("tags")
    @classmethod
    def _freeze_tags(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("tags")
    def _dump_tags(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def environment(self) -> str:
        """Deployment tier, denormalized from the ``Environment`` tag."""
        return self.tags.get(ENVIRONMENT_TAG, "")

    @property
    def missing_tags(self) -> list[str]:
        """Required tags that are absent or empty, sorted by name."""
        return sorted(t for t in REQUIRED_TAGS if not self.tags.get(t, "").strip())

    @property
    def is_valid(self) -> bool:
        """Available and carrying every required tag."""
        return self.state == ImageState.AVAILABLE and not self.missing_tags

    def name_parts(self) -> ImageName | None:
        """Parse ``name`` as ``golden-ami-<os>-<version>-<buildid>``."""
        match = _NAME_RE.match(self.name)
        if match is None:
            return None
        return ImageName(**match.groupdict())

    def sort_key(self) -> tuple[datetime, str]:
        """Ordering used for "latest" selection: creation time, then id."""
        return (self.created_at, self.id)
