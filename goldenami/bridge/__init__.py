"""Adapters between goldenami and external services."""

from goldenami.bridge.ec2 import Ec2ImageSource, image_to_record

__all__ = ["Ec2ImageSource", "image_to_record"]
