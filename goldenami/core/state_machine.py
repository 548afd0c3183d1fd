"""Image state machine.

Enforces the VALID_TRANSITIONS table. Transitions never mutate a record;
they return a copy with only ``state`` changed.
"""

from __future__ import annotations

from goldenami.errors import InvalidTransitionError
from goldenami.models.images import (
    INITIAL_STATES,
    VALID_TRANSITIONS,
    ImageRecord,
    ImageState,
)


def check_transition(image_id: str, current: ImageState, target: ImageState) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition {image_id} from {current.value} to {target.value}. "
            f"Allowed: {sorted(s.value for s in allowed)}"
        )


def check_initial_state(record: ImageRecord) -> None:
    """Raise InvalidTransitionError if a record cannot be a first sighting."""
    if record.state not in INITIAL_STATES:
        raise InvalidTransitionError(
            f"Image {record.id} cannot be ingested in state {record.state.value}. "
            f"Allowed: {sorted(s.value for s in INITIAL_STATES)}"
        )


def apply_transition(record: ImageRecord, target: ImageState) -> ImageRecord:
    """Return ``record`` moved to ``target``, validating the transition."""
    check_transition(record.id, record.state, target)
    return record.model_copy(update={"state": target})


def available_transitions(state: ImageState) -> set[ImageState]:
    """Return the set of valid target states from ``state``."""
    return set(VALID_TRANSITIONS.get(state, set()))
