# src/storage/store_factory.py — v1
"""Factory for story store instantiation."""

from __future__ import annotations

from arstraverse.config.settings import Settings
from arstraverse.storage.base_story_store import BaseStoryStore


def create_story_store(settings: Settings | None = None) -> BaseStoryStore:
    """Instantiate the story store for the configured database.

    Args:
        settings: Application settings. Defaults to ``Settings()``.

    Returns:
        Configured BaseStoryStore implementation.
    """
    from arstraverse.storage.sqlite_story_store import SqliteStoryStore

    settings = settings or Settings()
    db_path = settings.database_path
    if str(db_path) == ":memory:":
        return SqliteStoryStore(":memory:")
    return SqliteStoryStore(db_path.expanduser())
