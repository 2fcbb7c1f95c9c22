# src/story/service.py — v1
"""Story upsert / versioning engine.

Every save is a full replace inside a single store transaction. When a
story already exists, its current state is snapshotted into history
before any row is touched, so history always holds the state
immediately prior to each overwrite.

Concurrent saves to the same workspace are not version-checked: the last
committed transaction wins.
"""

from __future__ import annotations

import logging

from arstraverse.graph.meta_graph_builder import DEFAULT_EDGE_PREVIEW
from arstraverse.logging.context import set_story_context, set_workspace_context
from arstraverse.storage.base_story_store import BaseStoryStore
from arstraverse.storage.models import StoryHistoryRecord, StoryRecord, WorkspaceRecord
from arstraverse.story.consistency import check_topic_space_consistency
from arstraverse.story.converter import convert_from_database, convert_to_database
from arstraverse.story.errors import (
    HistoryNotFoundError,
    StoryIntegrityError,
    StoryNotFoundError,
    TopicSpaceNotFoundError,
    WorkspaceAccessError,
)
from arstraverse.story.models import (
    ConsistencyResult,
    MetaGraphStoryData,
    StoryHistoryEntry,
    StoryView,
)

logger = logging.getLogger(__name__)


class StoryService:
    """Workspace-scoped story operations over a BaseStoryStore."""

    def __init__(
        self, store: BaseStoryStore, edge_preview: int = DEFAULT_EDGE_PREVIEW,
    ) -> None:
        self._store = store
        self._edge_preview = edge_preview

    async def _require_workspace(
        self, workspace_id: str, actor_user_id: str,
    ) -> WorkspaceRecord:
        workspace = await self._store.get_workspace(workspace_id)
        if workspace is None or not workspace.can_access(actor_user_id):
            raise WorkspaceAccessError("Workspace not found or access denied")
        return workspace

    async def upsert(
        self,
        workspace_id: str,
        topic_space_id: str,
        story_data: MetaGraphStoryData,
        actor_user_id: str,
        description: str | None = None,
    ) -> StoryRecord:
        """Save a story for a workspace, replacing any previous version.

        A soft-deleted story is restored by the save.

        Raises:
            WorkspaceAccessError: Actor is neither owner nor collaborator.
            TopicSpaceNotFoundError: ``topic_space_id`` is unknown.
            StoryIntegrityError: The story references communities or graph
                nodes that cannot be resolved. Nothing is persisted.
        """
        set_workspace_context(workspace_id, actor_user_id, "story.upsert")
        await self._require_workspace(workspace_id, actor_user_id)

        if not await self._store.topic_space_exists(topic_space_id):
            raise TopicSpaceNotFoundError("TopicSpace not found")

        payload = convert_to_database(story_data, workspace_id, topic_space_id)

        async with self._store.transaction():
            existing = await self._store.load_story(workspace_id, include_deleted=True)

            if existing is not None:
                set_story_context(existing.id)
                snapshot = convert_from_database(existing, self._edge_preview)
                await self._store.create_history(
                    existing.id,
                    snapshot.model_dump_json(),
                    actor_user_id,
                    description,
                )
                story = await self._store.update_story(
                    existing.id, topic_space_id, payload.story.filter,
                )
                await self._store.delete_story_children(existing.id)
            else:
                story = await self._store.create_story(payload.story)
                set_story_context(story.id)

            row_ids: dict[str, str] = {}
            for node_row in payload.meta_nodes:
                created = await self._store.create_meta_node(story.id, node_row)
                row_ids[node_row.community_id] = created.id

            for edge_row in payload.meta_edges:
                from_id = row_ids.get(edge_row.from_community_id)
                to_id = row_ids.get(edge_row.to_community_id)
                if from_id is None or to_id is None:
                    raise StoryIntegrityError(
                        f"MetaNode not found for edge: "
                        f"{edge_row.from_community_id} -> {edge_row.to_community_id}"
                    )
                await self._store.create_meta_edge(story.id, edge_row, from_id, to_id)

            for summary_row in payload.summaries:
                meta_node_id = row_ids.get(summary_row.community_id)
                if meta_node_id is None:
                    raise StoryIntegrityError(
                        f"MetaNode not found for summary: {summary_row.community_id}"
                    )
                await self._store.create_summary(meta_node_id, summary_row)

            for story_row in payload.stories:
                meta_node_id = row_ids.get(story_row.community_id)
                if meta_node_id is None:
                    raise StoryIntegrityError(
                        f"MetaNode not found for story: {story_row.community_id}"
                    )
                await self._store.create_community_story(meta_node_id, story_row.story)

        logger.info(
            "Saved story %s (%d communities, %d meta-edges, %s)",
            story.id,
            len(payload.meta_nodes),
            len(payload.meta_edges),
            "updated" if existing is not None else "created",
            extra={"data": {
                "story_id": story.id,
                "topic_space_id": topic_space_id,
                "summaries": len(payload.summaries),
                "stories": len(payload.stories),
            }},
        )
        return story

    async def get(self, workspace_id: str, actor_user_id: str) -> StoryView | None:
        """Live story of a workspace with its consistency status."""
        set_workspace_context(workspace_id, actor_user_id, "story.get")
        workspace = await self._require_workspace(workspace_id, actor_user_id)

        story = await self._store.load_story(workspace_id, include_deleted=False)
        if story is None:
            return None
        set_story_context(story.id)

        consistency = check_topic_space_consistency(
            workspace.referenced_topic_space_ids, story,
        )
        if not consistency.is_consistent:
            logger.warning("%s", consistency.message)

        return StoryView(
            story=StoryRecord(**story.model_dump(include=set(StoryRecord.model_fields))),
            meta_graph_data=convert_from_database(story, self._edge_preview),
            consistency=consistency,
        )

    async def soft_delete(self, workspace_id: str, actor_user_id: str) -> StoryRecord:
        """Mark the live story of a workspace as deleted.

        Raises:
            StoryNotFoundError: No live story for the workspace.
            WorkspaceAccessError: Actor is neither owner nor collaborator.
        """
        set_workspace_context(workspace_id, actor_user_id, "story.soft_delete")
        story = await self._store.get_story(workspace_id, include_deleted=False)
        if story is None:
            raise StoryNotFoundError("Story not found")
        set_story_context(story.id)

        workspace = await self._store.get_workspace(workspace_id)
        if workspace is None or not workspace.can_access(actor_user_id):
            raise WorkspaceAccessError("Access denied")

        deleted = await self._store.soft_delete_story(story.id)
        logger.info("Soft-deleted story %s", story.id)
        return deleted

    async def check_consistency(
        self, workspace_id: str, actor_user_id: str,
    ) -> ConsistencyResult:
        set_workspace_context(workspace_id, actor_user_id, "story.check_consistency")
        workspace = await self._require_workspace(workspace_id, actor_user_id)
        story = await self._store.get_story(workspace_id, include_deleted=False)
        return check_topic_space_consistency(workspace.referenced_topic_space_ids, story)

    async def list_history(
        self, workspace_id: str, actor_user_id: str,
    ) -> list[StoryHistoryRecord]:
        """Snapshots of the workspace's story, newest first."""
        set_workspace_context(workspace_id, actor_user_id, "story.list_history")
        await self._require_workspace(workspace_id, actor_user_id)

        story = await self._store.get_story(workspace_id, include_deleted=True)
        if story is None:
            return []
        set_story_context(story.id)
        return await self._store.list_history(story.id)

    async def get_history_entry(
        self, history_id: str, actor_user_id: str,
    ) -> StoryHistoryEntry:
        """One snapshot, parsed back into MetaGraphStoryData.

        Raises:
            HistoryNotFoundError: Unknown ``history_id``.
            WorkspaceAccessError: Actor cannot access the owning workspace.
        """
        record = await self._store.get_history(history_id)
        if record is None:
            raise HistoryNotFoundError("Story history not found")

        story = await self._store.get_story_by_id(record.story_id)
        if story is None:
            raise HistoryNotFoundError("Story history not found")
        set_workspace_context(story.workspace_id, actor_user_id, "story.get_history_entry")
        set_story_context(story.id)

        workspace = await self._store.get_workspace(story.workspace_id)
        if workspace is None or not workspace.can_access(actor_user_id):
            raise WorkspaceAccessError("Access denied")

        return StoryHistoryEntry(
            id=record.id,
            story_id=record.story_id,
            snapshot_data=MetaGraphStoryData.model_validate_json(record.snapshot_data),
            description=record.description,
            saved_by_id=record.saved_by_id,
            created_at=record.created_at,
        )
