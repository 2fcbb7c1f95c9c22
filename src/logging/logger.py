# src/logging/logger.py — v1
"""Logger factory with JSON and text formatters."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from arstraverse.logging.context import get_context


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        log_entry: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context_dict = ctx.as_dict()
        if context_dict:
            log_entry["context"] = context_dict

        # Extra data passed via record.__dict__
        if hasattr(record, "data") and record.data:  # type: ignore[attr-defined]
            log_entry["data"] = record.data  # type: ignore[attr-defined]

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            _record_time(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.workspace_id:
            parts.append(f"[ws={ctx.workspace_id}]")
        if ctx.operation:
            parts.append(f"({ctx.operation})")
        parts.append(f"- {record.getMessage()}")
        text = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            text += "\n" + self.formatException(record.exc_info)
        return text


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Configuration is applied by setup_logging()."""
    return logging.getLogger(f"arstraverse.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    stream: TextIO | None = None,
) -> None:
    """Configure root arstraverse logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = stdout only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        stream: Console stream (default: stdout).
    """
    root_logger = logging.getLogger("arstraverse")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates on re-init
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from arstraverse.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(
            log_file, rotation=rotation, retention=retention
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def setup_logging_from_settings(settings: Any, stream: TextIO | None = None) -> None:
    """Apply the logging section of a Settings instance."""
    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=stream,
    )
