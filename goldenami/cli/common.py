"""Helpers shared by the CLI commands: logging setup and selector wiring."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from goldenami.config import config
from goldenami.core.history_store import ImageHistoryStore
from goldenami.core.selector import ImageSelector


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a colored, timestamped Rich handler to the goldenami logger."""
    logger = logging.getLogger("goldenami")
    logger.setLevel((level or config.log_level).upper())

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        logger.addHandler(handler)

    return logger


def open_selector(db_path: Path | None = None) -> ImageSelector:
    """Build a selector over the durable history at ``db_path``."""
    store = ImageHistoryStore(db_path or config.history_path)
    return ImageSelector(store, policy=config.default_policy())
