"""Exception hierarchy shared by the selector, the store and the adapters.

Validation failures are not exceptions; see ``goldenami.models.validation``.
"""

from __future__ import annotations


class GoldenAmiError(RuntimeError):
    """Base class for every error raised by goldenami."""


class IngestError(GoldenAmiError):
    """Raised when an image record cannot be added to the build history."""


class DuplicateImageError(IngestError):
    """Raised when an image id has already been recorded."""

    def __init__(self, image_id: str) -> None:
        super().__init__(f"Image {image_id} is already recorded")
        self.image_id = image_id


class ImageNotFoundError(GoldenAmiError):
    """Raised when an image id or environment has no matching record."""


class InvalidTransitionError(GoldenAmiError):
    """Raised when a requested image state transition is not valid."""


class ManifestError(GoldenAmiError):
    """Raised when a Packer manifest is missing or malformed."""


class LastBuildNotFoundError(GoldenAmiError):
    """Raised when no last-build snapshot exists for an environment."""


class Ec2SourceError(GoldenAmiError):
    """Raised when the EC2 API call behind an image lookup fails."""
