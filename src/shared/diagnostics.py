"""Logging setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from shared.constants import LOG_FORMAT


def setup_logging(
    level: int | str = logging.INFO, log_file: str | Path | None = None
) -> None:
    """Configure root logging to stdout and, optionally, a UTF-8 log file.

    Repeated calls replace the previously installed handlers.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding='utf-8'))
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
