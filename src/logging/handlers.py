# src/logging/handlers.py — v1
"""Size-based rotating file handler for the story service logs."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse '10MB', '512KB' or a bare byte count into bytes."""
    text = size_str.strip()
    if text.isdigit():
        return int(text)
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB)$", text, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a rotating file handler, creating the parent directory.

    Args:
        log_file: Path to log file (``~`` is expanded).
        rotation: Max file size before rotation.
        retention: Number of backup files to keep.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
