"""SQLite-backed durable build history.

Layout:
- ``images``: one row per image keyed by ``image_id``, indexed by
  ``(environment, created_at)``. ``seq`` preserves insertion order.
- ``image_events``: append-only log of every ingest and state transition.
  No update, no delete.

Only ``images.state`` (and the record JSON that mirrors it) is ever
rewritten, and only together with an ``image_events`` row in the same
transaction.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from goldenami.errors import DuplicateImageError, ImageNotFoundError
from goldenami.models.images import ImageRecord, ImageState


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_IMAGES = """
CREATE TABLE IF NOT EXISTS images (
    seq           INTEGER PRIMARY KEY AUTOINCREMENT,
    image_id      TEXT NOT NULL UNIQUE,
    environment   TEXT NOT NULL,
    created_at    TEXT NOT NULL,
    state         TEXT NOT NULL,
    record_json   TEXT NOT NULL
);
"""

_CREATE_IDX_ENV = """
CREATE INDEX IF NOT EXISTS idx_images_env ON images(environment, created_at);
"""

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS image_events (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    image_id       TEXT NOT NULL,
    event          TEXT NOT NULL,
    from_state     TEXT NOT NULL DEFAULT '',
    to_state       TEXT NOT NULL,
    timestamp_utc  TEXT NOT NULL
);
"""

_CREATE_IDX_EVENTS = """
CREATE INDEX IF NOT EXISTS idx_events_image ON image_events(image_id, id);
"""


class ImageEvent(BaseModel):
    """One row of the append-only image event log."""

    model_config = ConfigDict(frozen=True)

    image_id: str
    event: str  # "ingest" or "transition"
    from_state: str = ""
    to_state: str
    timestamp_utc: datetime


class ImageHistoryStore:
    """Durable store for image records and their event log.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_IMAGES)
            conn.execute(_CREATE_IDX_ENV)
            conn.execute(_CREATE_EVENTS)
            conn.execute(_CREATE_IDX_EVENTS)
            conn.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: ImageRecord) -> None:
        """Persist a newly ingested record and its ingest event."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO images
                        (image_id, environment, created_at, state, record_json)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.environment,
                        record.created_at.isoformat(),
                        record.state.value,
                        record.model_dump_json(),
                    ),
                )
                self._append_event(conn, record.id, "ingest", "", record.state)
        except sqlite3.IntegrityError as exc:
            raise DuplicateImageError(record.id) from exc

    def update_state(self, record: ImageRecord, from_state: ImageState) -> None:
        """Persist a state transition for an existing record.

        The row is only touched if it is still in ``from_state``.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE images SET state = ?, record_json = ?
                WHERE image_id = ? AND state = ?
                """,
                (
                    record.state.value,
                    record.model_dump_json(),
                    record.id,
                    from_state.value,
                ),
            )
            if cursor.rowcount != 1:
                conn.rollback()
                raise ImageNotFoundError(
                    f"No stored image {record.id} in state {from_state.value}"
                )
            self._append_event(conn, record.id, "transition", from_state.value, record.state)

    @staticmethod
    def _append_event(
        conn: sqlite3.Connection,
        image_id: str,
        event: str,
        from_state: str,
        to_state: ImageState,
    ) -> None:
        conn.execute(
            """
            INSERT INTO image_events
                (image_id, event, from_state, to_state, timestamp_utc)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                image_id,
                event,
                from_state,
                to_state.value,
                datetime.now(timezone.utc).isoformat(),
            ),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_all(self) -> list[ImageRecord]:
        """Return every stored record in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT record_json FROM images ORDER BY seq ASC"
            ).fetchall()
        return [ImageRecord.model_validate_json(row[0]) for row in rows]

    def get(self, image_id: str) -> ImageRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT record_json FROM images WHERE image_id = ?", (image_id,)
            ).fetchone()
        return ImageRecord.model_validate_json(row[0]) if row else None

    def get_environment(self, environment: str) -> list[ImageRecord]:
        """Return one environment's records ordered by creation time."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT record_json FROM images
                WHERE environment = ? ORDER BY created_at ASC, seq ASC
                """,
                (environment,),
            ).fetchall()
        return [ImageRecord.model_validate_json(row[0]) for row in rows]

    def get_events(self, image_id: str) -> list[ImageEvent]:
        """Return the event log of one image, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT image_id, event, from_state, to_state, timestamp_utc
                FROM image_events WHERE image_id = ? ORDER BY id ASC
                """,
                (image_id,),
            ).fetchall()
        return [
            ImageEvent(
                image_id=row[0],
                event=row[1],
                from_state=row[2],
                to_state=row[3],
                timestamp_utc=row[4],
            )
            for row in rows
        ]
