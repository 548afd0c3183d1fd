"""Validation policy and result models.

A ``ValidationResult`` carries every violated rule as a structured
``FailureReason``; callers decide which kinds are fatal for them.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from goldenami.models.images import REQUIRED_TAGS, ImageState


class ValidationPolicy(BaseModel):
    """Rules an image must satisfy to be considered deployable."""

    model_config = ConfigDict(frozen=True)

    required_tags: frozenset[str] = frozenset(REQUIRED_TAGS)
    required_state: ImageState = ImageState.AVAILABLE
    max_age: timedelta | None = None


class MissingTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["missing_tag"] = "missing_tag"
    tag: str

    def describe(self) -> str:
        return f"missing required tag {self.tag!r}"


class WrongState(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["wrong_state"] = "wrong_state"
    expected: ImageState
    actual: ImageState

    def describe(self) -> str:
        return f"state is {self.actual.value}, expected {self.expected.value}"


class TooOld(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["too_old"] = "too_old"
    age: timedelta
    max_age: timedelta

    def describe(self) -> str:
        return f"image is {self.age} old, maximum is {self.max_age}"


FailureReason = Annotated[
    Union[MissingTag, WrongState, TooOld], Field(discriminator="kind")
]


class ValidationResult(BaseModel):
    """Outcome of validating one image against a policy. Never persisted."""

    model_config = ConfigDict(frozen=True)

    image_id: str
    failures: list[FailureReason] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return not self.failures

    def failures_of(self, kind: str) -> list[FailureReason]:
        """Return the failures of one kind, in reported order."""
        return [f for f in self.failures if f.kind == kind]
