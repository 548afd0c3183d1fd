"""Image Lifecycle Selector — per-environment build history and selection.

The selector is the single owner of the build history. Callers never touch
the history directly; every change goes through ``ingest``, ``transition``
or ``deregister``.

Design:
- Append-only per environment: records are never removed, only a record's
  ``state`` is replaced by a transition.
- Arrival order is kept; "latest" is computed by ``created_at`` (ties broken
  by the highest id), so producers may report out of order.
- Each environment has its own lock; independent environments do not block
  each other. The id index has a separate lock, always taken first.
- Writes reach the durable store (if any) before memory is mutated, so a
  failed write leaves the history unchanged.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from goldenami.core.history_store import ImageHistoryStore
from goldenami.core.state_machine import (
    apply_transition,
    available_transitions,
    check_initial_state,
    check_transition,
)
from goldenami.core.validator import validate as validate_record
from goldenami.errors import DuplicateImageError, ImageNotFoundError
from goldenami.models.images import ImageRecord, ImageState
from goldenami.models.validation import ValidationPolicy, ValidationResult

logger = logging.getLogger(__name__)


class IngestReceipt(BaseModel):
    """What happened to an ingested record."""

    model_config = ConfigDict(frozen=True)

    image_id: str
    environment: str
    position: int  # index in the environment's arrival-ordered history
    out_of_order: bool = False  # older than a record already ingested


@dataclass
class _EnvironmentHistory:
    lock: threading.RLock = field(default_factory=threading.RLock)
    records: list[ImageRecord] = field(default_factory=list)
    positions: dict[str, int] = field(default_factory=dict)
    newest: datetime | None = None

    def append(self, record: ImageRecord) -> int:
        self.records.append(record)
        position = len(self.records) - 1
        self.positions[record.id] = position
        if self.newest is None or record.created_at > self.newest:
            self.newest = record.created_at
        return position


class ImageSelector:
    """Maintains build history and answers "latest valid image" queries.

    Parameters
    ----------
    store:
        Optional durable store. When given, the history is rebuilt from it
        on construction and every write is persisted.
    policy:
        Default policy for ``validate`` when none is passed.
    """

    def __init__(
        self,
        store: ImageHistoryStore | None = None,
        *,
        policy: ValidationPolicy | None = None,
    ) -> None:
        self._store = store
        self._policy = policy or ValidationPolicy()
        self._index_lock = threading.RLock()
        # image_id -> environment; None while an ingest is in flight
        self._index: dict[str, str | None] = {}
        self._histories: dict[str, _EnvironmentHistory] = {}

        if store is not None:
            self._rebuild()

    @property
    def policy(self) -> ValidationPolicy:
        return self._policy

    def _rebuild(self) -> None:
        """Rebuild in-memory history from the durable store."""
        assert self._store is not None
        records = self._store.load_all()
        for record in records:
            self._history_for(record.environment).append(record)
            self._index[record.id] = record.environment
        logger.debug("Loaded %d image records from %s", len(records), self._store.path)

    def _history_for(self, environment: str) -> _EnvironmentHistory:
        with self._index_lock:
            history = self._histories.get(environment)
            if history is None:
                history = self._histories[environment] = _EnvironmentHistory()
            return history

    def _locate(self, image_id: str) -> _EnvironmentHistory:
        with self._index_lock:
            environment = self._index.get(image_id)
            if environment is None:
                raise ImageNotFoundError(f"Unknown image {image_id}")
            return self._histories[environment]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def ingest(self, record: ImageRecord) -> IngestReceipt:
        """Append a newly built image to its environment's history.

        Raises
        ------
        DuplicateImageError
            If ``record.id`` was already ingested. History is unchanged.
        InvalidTransitionError
            If the record arrives in a state that cannot be a first sighting,
            or re-reports a failed/deregistered image in another state.
        """
        check_initial_state(record)

        with self._index_lock:
            if record.id in self._index:
                self._reject_reingest(record)
            self._index[record.id] = None

        history = self._history_for(record.environment)
        try:
            with history.lock:
                out_of_order = history.newest is not None and record.created_at < history.newest
                if self._store is not None:
                    self._store.insert(record)
                position = history.append(record)
        except BaseException:
            with self._index_lock:
                del self._index[record.id]
            raise

        with self._index_lock:
            self._index[record.id] = record.environment

        if out_of_order:
            logger.warning(
                "Image %s for %r was reported out of order (created %s, newest %s)",
                record.id,
                record.environment,
                record.created_at.isoformat(),
                history.newest.isoformat() if history.newest else "",
            )
        logger.info(
            "Ingested image %s (%s) for environment %r",
            record.id,
            record.state.value,
            record.environment,
        )
        return IngestReceipt(
            image_id=record.id,
            environment=record.environment,
            position=position,
            out_of_order=out_of_order,
        )

    def _reject_reingest(self, record: ImageRecord) -> None:
        """Raise for an id that is already known. Caller holds the index lock."""
        environment = self._index[record.id]
        if environment is not None:
            history = self._histories[environment]
            with history.lock:
                existing = history.records[history.positions[record.id]]
            if not available_transitions(existing.state) and record.state != existing.state:
                check_transition(record.id, existing.state, record.state)
        logger.warning("Duplicate image %s ignored", record.id)
        raise DuplicateImageError(record.id)

    def transition(self, image_id: str, target: ImageState) -> ImageRecord:
        """Move an ingested image to ``target`` and return the new record.

        Raises ImageNotFoundError for unknown ids and InvalidTransitionError
        for transitions outside the state machine; state is then unchanged.
        """
        history = self._locate(image_id)
        with history.lock:
            position = history.positions[image_id]
            current = history.records[position]
            updated = apply_transition(current, target)
            if self._store is not None:
                self._store.update_state(updated, current.state)
            history.records[position] = updated

        logger.info(
            "Image %s: %s -> %s", image_id, current.state.value, updated.state.value
        )
        return updated

    def deregister(self, image_id: str) -> ImageRecord:
        """Mark an available image as deregistered. It stays in history."""
        return self.transition(image_id, ImageState.DEREGISTERED)

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def get_latest_valid(self, environment: str) -> ImageRecord:
        """Return the newest valid image for ``environment``.

        Newest means greatest ``created_at``; equal timestamps are broken by
        the lexicographically highest id.
        """
        with self._index_lock:
            history = self._histories.get(environment)
        if history is not None:
            with history.lock:
                candidates = [r for r in history.records if r.is_valid]
            if candidates:
                return max(candidates, key=ImageRecord.sort_key)
        raise ImageNotFoundError(
            f"No valid golden image available for environment {environment!r}"
        )

    def get(self, image_id: str) -> ImageRecord:
        """Return the current record for ``image_id``."""
        history = self._locate(image_id)
        with history.lock:
            return history.records[history.positions[image_id]]

    def history(self, environment: str) -> list[ImageRecord]:
        """Return a snapshot of one environment's history in arrival order."""
        with self._index_lock:
            history = self._histories.get(environment)
        if history is None:
            return []
        with history.lock:
            return list(history.records)

    def environments(self) -> list[str]:
        """Return every environment that has at least one record."""
        with self._index_lock:
            return sorted(env for env, h in self._histories.items() if h.records)

    def validate(
        self, record: ImageRecord, policy: ValidationPolicy | None = None
    ) -> ValidationResult:
        """Validate ``record`` against ``policy`` (or the default policy)."""
        return validate_record(record, policy or self._policy)

    def __len__(self) -> int:
        with self._index_lock:
            return sum(1 for env in self._index.values() if env is not None)

    def __contains__(self, image_id: object) -> bool:
        with self._index_lock:
            return self._index.get(image_id) is not None  # type: ignore[arg-type]
