# src/story/models.py — v1
"""In-memory story shapes: MetaGraphStoryData and its parts, converter
payloads, consistency results and read views.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Union

from pydantic import BaseModel, Field

from arstraverse.core.models import GraphDocument, PropertyValue
from arstraverse.graph.models import PreparedCommunity
from arstraverse.storage.models import StoryRecord

# Plain text, or a rich-text document whose paragraphs may carry
# segmentNodeIds / segmentEdgeIds attributes.
StoryContent = Union[str, dict[str, Any]]


class MetaNodeEntry(BaseModel):
    community_id: str
    member_node_ids: list[str] = Field(default_factory=list)
    size: int
    has_external_connections: bool


class SummaryEntry(BaseModel):
    community_id: str
    title: str
    summary: str


class NarrativeFlowEntry(BaseModel):
    """A community placed into the narrative, with its bridging text."""

    community_id: str
    order: int
    transition_text: str = ""


class MetaGraphStoryData(BaseModel):
    """Full story as used by rendering, export and regeneration."""

    meta_graph: GraphDocument = Field(default_factory=GraphDocument)
    meta_nodes: list[MetaNodeEntry] = Field(default_factory=list)
    community_map: dict[str, str] = Field(default_factory=dict)
    summaries: list[SummaryEntry] = Field(default_factory=list)
    narrative_flow: list[NarrativeFlowEntry] = Field(default_factory=list)
    detailed_stories: dict[str, StoryContent] = Field(default_factory=dict)
    prepared_communities: list[PreparedCommunity] = Field(default_factory=list)
    filter: dict[str, Any] | None = None


# === Converter payload (pre-persistence rows keyed by community id) ===


class StoryRowData(BaseModel):
    workspace_id: str
    referenced_topic_space_id: str
    filter: dict[str, Any] | None = None


class MetaNodeRowData(BaseModel):
    community_id: str
    name: str
    label: str
    properties: dict[str, PropertyValue] = Field(default_factory=dict)
    size: int
    has_external_connections: bool
    member_node_ids: list[str] = Field(default_factory=list)


class MetaEdgeRowData(BaseModel):
    type: str
    properties: dict[str, PropertyValue] = Field(default_factory=dict)
    from_community_id: str
    to_community_id: str


class SummaryRowData(BaseModel):
    community_id: str
    title: str
    summary: str
    order: int | None = None
    transition_text: str | None = None


class StoryContentRowData(BaseModel):
    community_id: str
    story: StoryContent


class StoryDatabasePayload(BaseModel):
    """Everything needed to (re)write a story's rows."""

    story: StoryRowData
    meta_nodes: list[MetaNodeRowData] = Field(default_factory=list)
    meta_edges: list[MetaEdgeRowData] = Field(default_factory=list)
    summaries: list[SummaryRowData] = Field(default_factory=list)
    stories: list[StoryContentRowData] = Field(default_factory=list)


# === Read-side results ===


class ConsistencyResult(BaseModel):
    """Advisory check of story vs. workspace topic-space references."""

    is_consistent: bool
    workspace_topic_space_ids: list[str] = Field(default_factory=list)
    story_topic_space_id: str | None = None
    message: str


class StoryView(BaseModel):
    story: StoryRecord
    meta_graph_data: MetaGraphStoryData
    consistency: ConsistencyResult


class StoryHistoryEntry(BaseModel):
    """One snapshot, parsed back into MetaGraphStoryData."""

    id: str
    story_id: str
    snapshot_data: MetaGraphStoryData
    description: str | None = None
    saved_by_id: str
    created_at: datetime
