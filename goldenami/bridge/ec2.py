"""EC2 adapter — turns DescribeImages output into ImageRecords.

This is the only module that talks to AWS. It does not poll or retry;
callers invoke it once the images have reached a final state.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from goldenami.errors import Ec2SourceError, ImageNotFoundError
from goldenami.models.images import ImageRecord, ImageState

logger = logging.getLogger(__name__)

# EC2 image states -> lifecycle states
EC2_STATE_MAP: dict[str, ImageState] = {
    "pending": ImageState.PENDING,
    "transient": ImageState.PENDING,
    "available": ImageState.AVAILABLE,
    "failed": ImageState.FAILED,
    "invalid": ImageState.FAILED,
    "error": ImageState.FAILED,
    "deregistered": ImageState.DEREGISTERED,
    "disabled": ImageState.DEREGISTERED,
}

_NOT_FOUND_CODES = {"InvalidAMIID.NotFound", "InvalidAMIID.Malformed", "InvalidAMIID.Unavailable"}


def image_to_record(image: dict[str, Any], region: str) -> ImageRecord:
    """Convert one ``Images[]`` entry of DescribeImages into an ImageRecord."""
    state = image.get("State", "")
    try:
        lifecycle_state = EC2_STATE_MAP[state]
    except KeyError:
        raise Ec2SourceError(
            f"Image {image.get('ImageId')} has unknown EC2 state {state!r}"
        ) from None

    created = image.get("CreationDate", "")
    try:
        created_at = datetime.fromisoformat(created.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise Ec2SourceError(
            f"Image {image.get('ImageId')} has unreadable CreationDate {created!r}"
        ) from None

    return ImageRecord(
        id=image["ImageId"],
        name=image.get("Name", ""),
        region=region,
        state=lifecycle_state,
        created_at=created_at,
        tags={t["Key"]: t["Value"] for t in image.get("Tags", [])},
    )


class Ec2ImageSource:
    """Reads golden images owned by this account from EC2.

    Parameters
    ----------
    client:
        A boto3 EC2 client. Created for ``region`` when not provided.
    region:
        AWS region, used when creating the client and stamped on records.
    """

    def __init__(self, client: Any = None, *, region: str = "us-east-1") -> None:
        self._client = client or boto3.client("ec2", region_name=region)
        self.region = self._client.meta.region_name or region

    def list_images(self, name_pattern: str = "golden-ami-*") -> list[ImageRecord]:
        """Return golden images owned by this account, newest first."""
        try:
            response = self._client.describe_images(
                Owners=["self"],
                Filters=[{"Name": "name", "Values": [name_pattern]}],
            )
        except (ClientError, BotoCoreError) as exc:
            raise Ec2SourceError(f"Failed to list images: {exc}") from exc

        records = [image_to_record(img, self.region) for img in response.get("Images", [])]
        records.sort(key=ImageRecord.sort_key, reverse=True)
        logger.info("Found %d image(s) matching %r in %s", len(records), name_pattern, self.region)
        return records

    def describe_image(self, ami_id: str) -> ImageRecord:
        """Return the record for one AMI."""
        try:
            response = self._client.describe_images(ImageIds=[ami_id])
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise ImageNotFoundError(
                    f"AMI {ami_id} not found in region {self.region}"
                ) from exc
            raise Ec2SourceError(f"Failed to describe {ami_id}: {exc}") from exc
        except BotoCoreError as exc:
            raise Ec2SourceError(f"Failed to describe {ami_id}: {exc}") from exc

        images = response.get("Images", [])
        if not images:
            raise ImageNotFoundError(f"AMI {ami_id} not found in region {self.region}")
        return image_to_record(images[0], self.region)

    def launch_permissions(self, ami_id: str) -> list[dict[str, str]]:
        """Return the launch permissions of an AMI. Empty means private."""
        try:
            response = self._client.describe_image_attribute(
                ImageId=ami_id, Attribute="launchPermission"
            )
        except (ClientError, BotoCoreError) as exc:
            raise Ec2SourceError(
                f"Failed to read launch permissions of {ami_id}: {exc}"
            ) from exc
        return list(response.get("LaunchPermissions", []))
