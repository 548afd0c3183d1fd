"""goldenami data models — all Pydantic v2, all frozen (immutable)."""

from goldenami.models.builds import LastBuildInfo, PackerBuild, PackerManifest
from goldenami.models.images import (
    INITIAL_STATES,
    REQUIRED_TAGS,
    VALID_TRANSITIONS,
    ImageName,
    ImageRecord,
    ImageState,
)
from goldenami.models.validation import (
    FailureReason,
    MissingTag,
    TooOld,
    ValidationPolicy,
    ValidationResult,
    WrongState,
)

__all__ = [
    # images
    "ImageState",
    "ImageRecord",
    "ImageName",
    "VALID_TRANSITIONS",
    "INITIAL_STATES",
    "REQUIRED_TAGS",
    # validation
    "ValidationPolicy",
    "ValidationResult",
    "FailureReason",
    "MissingTag",
    "WrongState",
    "TooOld",
    # builds
    "LastBuildInfo",
    "PackerBuild",
    "PackerManifest",
]
