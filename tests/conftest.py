"""Shared test fixtures for goldenami."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from goldenami.core.history_store import ImageHistoryStore
from goldenami.core.selector import ImageSelector
from goldenami.models.images import ImageRecord, ImageState

BASE_TIME = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time() -> datetime:
    """A fixed reference time for deterministic ordering."""
    return BASE_TIME


@pytest.fixture
def store(tmp_path: Path) -> ImageHistoryStore:
    """Provide a fresh ImageHistoryStore backed by a temp SQLite database."""
    return ImageHistoryStore(tmp_path / "images.db")


@pytest.fixture
def selector() -> ImageSelector:
    """Provide an in-memory ImageSelector."""
    return ImageSelector()


@pytest.fixture
def persistent_selector(store: ImageHistoryStore) -> ImageSelector:
    """Provide an ImageSelector wired to the test store."""
    return ImageSelector(store)


# ---------------------------------------------------------------------------
# Record factory — shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_record() -> Callable[..., ImageRecord]:
    """Factory fixture: build a valid ImageRecord with sensible defaults.

    ``minutes`` offsets ``created_at`` from BASE_TIME; ``tags`` overrides
    individual tags and a value of ``None`` drops the tag.
    """

    def _factory(
        image_id: str = "ami-0000000000000001",
        environment: str = "production",
        state: ImageState = ImageState.AVAILABLE,
        minutes: int = 0,
        tags: dict[str, str | None] | None = None,
        **overrides: Any,
    ) -> ImageRecord:
        merged: dict[str, str | None] = {
            "Environment": environment,
            "Purpose": "golden-ami",
            "OS": "ubuntu",
            "OSVersion": "22.04",
        }
        merged.update(tags or {})
        defaults: dict[str, Any] = {
            "id": image_id,
            "name": f"golden-ami-ubuntu-22.04-20250601-120000-{image_id[-8:]}",
            "region": "us-east-1",
            "state": state,
            "created_at": BASE_TIME + timedelta(minutes=minutes),
            "tags": {k: v for k, v in merged.items() if v is not None},
        }
        defaults.update(overrides)
        return ImageRecord(**defaults)

    return _factory
