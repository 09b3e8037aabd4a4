"""Logger setup for the relay pipeline."""

from __future__ import annotations

import logging

LOGGER_NAME = "sfrelay"


def make_logger(debug_enabled: bool, name: str = LOGGER_NAME) -> logging.Logger:
    """Return the pipeline logger; debug output only when ``debug_enabled``."""
    log = logging.getLogger(name)
    log.setLevel(logging.DEBUG if debug_enabled else logging.INFO)
    return log
