# src/story/errors.py — v1
"""Story exceptions."""

from __future__ import annotations


class StoryError(Exception):
    """Base class for story errors."""


class StoryIntegrityError(StoryError):
    """Input violates a data invariant (e.g. missing meta node data)."""


class WorkspaceAccessError(StoryError):
    """Workspace not found, or actor is neither owner nor collaborator."""


class StoryNotFoundError(StoryError):
    pass


class TopicSpaceNotFoundError(StoryError):
    pass


class HistoryNotFoundError(StoryError):
    pass
