# src/storage/models.py — v1
"""Persisted row models, as loaded from the story database.

Property bags are kept as stored JSON (``dict[str, Any]``); coercion to
string maps happens in the story converter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class WorkspaceRecord(BaseModel):
    id: str
    user_id: str
    collaborator_ids: list[str] = Field(default_factory=list)
    referenced_topic_space_ids: list[str] = Field(default_factory=list)

    def can_access(self, user_id: str) -> bool:
        """Owner or collaborator."""
        return user_id == self.user_id or user_id in self.collaborator_ids


class StoryRecord(BaseModel):
    id: str
    workspace_id: str
    referenced_topic_space_id: str | None = None
    filter: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class GraphRelationshipRecord(BaseModel):
    id: str
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    from_node_id: str
    to_node_id: str


class GraphNodeRecord(BaseModel):
    id: str
    name: str
    label: str
    properties: dict[str, Any] = Field(default_factory=dict)
    topic_space_id: str | None = None
    relationships_from: list[GraphRelationshipRecord] = Field(default_factory=list)


class CommunitySummaryRecord(BaseModel):
    id: str
    meta_node_id: str
    title: str
    summary: str
    order: int | None = None
    transition_text: str | None = None


class CommunityStoryRecord(BaseModel):
    id: str
    meta_node_id: str
    story: str | dict[str, Any]


class MetaGraphNodeRecord(BaseModel):
    id: str
    story_id: str
    community_id: str
    name: str
    label: str
    properties: dict[str, Any] = Field(default_factory=dict)
    size: int
    has_external_connections: bool


class MetaGraphNodeWithRelations(MetaGraphNodeRecord):
    member_nodes: list[GraphNodeRecord] = Field(default_factory=list)
    summary: CommunitySummaryRecord | None = None
    story_content: CommunityStoryRecord | None = None


class MetaGraphRelationshipRecord(BaseModel):
    id: str
    story_id: str
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    from_meta_node_id: str
    to_meta_node_id: str


class MetaGraphRelationshipWithNodes(MetaGraphRelationshipRecord):
    from_meta_node: MetaGraphNodeRecord
    to_meta_node: MetaGraphNodeRecord


class StoryWithRelations(StoryRecord):
    """Story row with every relation needed for a full reconstruction."""

    meta_nodes: list[MetaGraphNodeWithRelations] = Field(default_factory=list)
    meta_edges: list[MetaGraphRelationshipWithNodes] = Field(default_factory=list)


class StoryHistoryRecord(BaseModel):
    """Append-only snapshot row. ``snapshot_data`` is serialized JSON."""

    id: str
    story_id: str
    snapshot_data: str
    saved_by_id: str
    created_at: datetime
    description: str | None = None
