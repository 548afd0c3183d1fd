"""Pure image validation against a ValidationPolicy.

Every rule is checked; a record missing two tags yields two failures.
"""

from __future__ import annotations

from datetime import datetime, timezone

from goldenami.models.images import ImageRecord
from goldenami.models.validation import (
    FailureReason,
    MissingTag,
    TooOld,
    ValidationPolicy,
    ValidationResult,
    WrongState,
)


def validate(
    record: ImageRecord,
    policy: ValidationPolicy,
    *,
    now: datetime | None = None,
) -> ValidationResult:
    """Validate ``record`` against ``policy`` without side effects.

    Parameters
    ----------
    record:
        The image to check.
    policy:
        Required tags, required state and optional maximum age.
    now:
        Reference time for the age rule. Defaults to the current UTC time.
    """
    failures: list[FailureReason] = []

    for tag in sorted(policy.required_tags):
        if not record.tags.get(tag, "").strip():
            failures.append(MissingTag(tag=tag))

    if record.state != policy.required_state:
        failures.append(
            WrongState(expected=policy.required_state, actual=record.state)
        )

    if policy.max_age is not None:
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        age = reference - record.created_at
        if age > policy.max_age:
            failures.append(TooOld(age=age, max_age=policy.max_age))

    return ValidationResult(image_id=record.id, failures=failures)
