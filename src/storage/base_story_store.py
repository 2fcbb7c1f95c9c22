# src/storage/base_story_store.py — v1
"""Abstract story store interface.

Covers the rows owned by the story engine plus the small slice of
workspace / topic-space / raw-graph data it reads from its collaborators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING

from arstraverse.core.models import GraphDocument
from arstraverse.storage.models import (
    CommunityStoryRecord,
    CommunitySummaryRecord,
    MetaGraphNodeRecord,
    MetaGraphRelationshipRecord,
    StoryHistoryRecord,
    StoryRecord,
    StoryWithRelations,
    WorkspaceRecord,
)

if TYPE_CHECKING:
    from arstraverse.story.models import (
        MetaEdgeRowData,
        MetaNodeRowData,
        StoryContent,
        StoryRowData,
        SummaryRowData,
    )


class BaseStoryStore(ABC):
    """Unified interface for story persistence backends."""

    # --- Transactions ---

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """All-or-nothing scope: commit on exit, roll back on any exception."""

    # --- Workspace / topic space collaborators ---

    @abstractmethod
    async def create_workspace(
        self, workspace_id: str, user_id: str, topic_space_ids: list[str] | None = None,
    ) -> WorkspaceRecord:
        """Create a workspace owned by ``user_id``."""

    @abstractmethod
    async def add_collaborator(self, workspace_id: str, user_id: str) -> None:
        """Grant a user collaborator access to a workspace."""

    @abstractmethod
    async def set_workspace_topic_spaces(
        self, workspace_id: str, topic_space_ids: list[str],
    ) -> None:
        """Replace the workspace's referenced topic spaces."""

    @abstractmethod
    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None:
        """Workspace with collaborators and referenced topic spaces."""

    @abstractmethod
    async def create_topic_space(self, topic_space_id: str, name: str = "") -> None:
        """Register a topic space."""

    @abstractmethod
    async def topic_space_exists(self, topic_space_id: str) -> bool:
        """Check that a topic space is registered."""

    # --- Raw graph collaborator ---

    @abstractmethod
    async def import_graph(self, topic_space_id: str, graph: GraphDocument) -> None:
        """Upsert raw nodes/relationships under a topic space."""

    @abstractmethod
    async def get_graph_document(self, topic_space_id: str) -> GraphDocument:
        """Raw graph of a topic space, in insertion order."""

    # --- Stories ---

    @abstractmethod
    async def load_story(
        self, workspace_id: str, include_deleted: bool = True,
    ) -> StoryWithRelations | None:
        """Story of a workspace with every relation eager-loaded."""

    @abstractmethod
    async def get_story(
        self, workspace_id: str, include_deleted: bool = False,
    ) -> StoryRecord | None:
        """Story row only."""

    @abstractmethod
    async def get_story_by_id(self, story_id: str) -> StoryRecord | None:
        """Story row by primary key, soft-deleted or not."""

    @abstractmethod
    async def create_story(self, row: StoryRowData) -> StoryRecord:
        """Insert a new story row."""

    @abstractmethod
    async def update_story(
        self,
        story_id: str,
        referenced_topic_space_id: str,
        filter: dict | None = None,
    ) -> StoryRecord:
        """Update in place, clearing ``deleted_at``. ``filter=None`` keeps it."""

    @abstractmethod
    async def soft_delete_story(self, story_id: str) -> StoryRecord:
        """Set ``deleted_at`` to now."""

    @abstractmethod
    async def delete_story_children(self, story_id: str) -> None:
        """Hard-delete every derived row of a story, in dependency order."""

    @abstractmethod
    async def create_meta_node(
        self, story_id: str, row: MetaNodeRowData,
    ) -> MetaGraphNodeRecord:
        """Insert a meta node and link its member graph nodes."""

    @abstractmethod
    async def create_meta_edge(
        self,
        story_id: str,
        row: MetaEdgeRowData,
        from_meta_node_id: str,
        to_meta_node_id: str,
    ) -> MetaGraphRelationshipRecord:
        """Insert a meta-graph relationship between two meta node rows."""

    @abstractmethod
    async def create_summary(
        self, meta_node_id: str, row: SummaryRowData,
    ) -> CommunitySummaryRecord:
        """Insert the summary of a meta node."""

    @abstractmethod
    async def create_community_story(
        self, meta_node_id: str, story: StoryContent,
    ) -> CommunityStoryRecord:
        """Insert the detailed story of a meta node."""

    # --- History ---

    @abstractmethod
    async def create_history(
        self,
        story_id: str,
        snapshot_data: str,
        saved_by_id: str,
        description: str | None = None,
    ) -> StoryHistoryRecord:
        """Append a snapshot row."""

    @abstractmethod
    async def list_history(self, story_id: str) -> list[StoryHistoryRecord]:
        """Snapshots of a story, newest first."""

    @abstractmethod
    async def get_history(self, history_id: str) -> StoryHistoryRecord | None:
        """Single snapshot row."""

    def close(self) -> None:
        """Release backend resources."""
