# src/logging/context.py — v1
"""Contextual logging support — attach workspace_id, story_id, actor and
operation to log records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per story operation.
_workspace_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "workspace_id", default=None
)
_story_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "story_id", default=None
)
_actor_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "actor_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    workspace_id: str | None = None
    story_id: str | None = None
    actor_id: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        workspace_id=_workspace_id.get(),
        story_id=_story_id.get(),
        actor_id=_actor_id.get(),
        operation=_operation.get(),
    )


def set_workspace_context(
    workspace_id: str, actor_id: str | None, operation: str | None = None,
) -> None:
    """Set request-level context (called once per service operation)."""
    _workspace_id.set(workspace_id)
    _actor_id.set(actor_id)
    _operation.set(operation)
    _story_id.set(None)


def set_story_context(story_id: str | None) -> None:
    """Attach the resolved story row id."""
    _story_id.set(story_id)


def clear_context() -> None:
    """Reset all context variables."""
    _workspace_id.set(None)
    _story_id.set(None)
    _actor_id.set(None)
    _operation.set(None)
