# src/graph/models.py — v1
"""Community and meta-graph models: MetaNodeData, MetaGraphResult,
PreparedCommunity.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from arstraverse.core.models import GraphDocument

UNASSIGNED_COMMUNITY = "unassigned"


class InternalEdge(BaseModel):
    """Relationship whose endpoints share a community (display form)."""

    source_name: str
    target_name: str
    type: str


class ExternalConnection(BaseModel):
    """Aggregate of cross edges between one community and a neighbor."""

    target_community_id: str
    edge_count: int
    edge_types: list[str] = Field(default_factory=list)


class MetaNodeData(BaseModel):
    """Per-community statistics, before persistence."""

    community_id: str
    member_node_ids: list[str] = Field(default_factory=list)
    member_node_names: list[str] = Field(default_factory=list)
    size: int = 0
    title: str | None = None
    summary: str | None = None
    internal_edges: list[InternalEdge] = Field(default_factory=list)
    external_connections: list[ExternalConnection] = Field(default_factory=list)
    has_external_connections: bool = False


class PreparedMemberNode(BaseModel):
    id: str
    name: str
    label: str
    properties: dict[str, str] = Field(default_factory=dict)


class DetailedEdge(BaseModel):
    """Internal edge with ids and properties, for narrative generation."""

    source_id: str
    source_name: str
    target_id: str
    target_name: str
    type: str
    properties: dict[str, str] = Field(default_factory=dict)


class PreparedCommunity(BaseModel):
    """Community projection handed to the narrative-generation collaborator."""

    community_id: str
    member_node_names: list[str] = Field(default_factory=list)
    member_node_labels: list[str] = Field(default_factory=list)
    internal_edges: str | None = None
    external_connections: str | None = None
    member_nodes: list[PreparedMemberNode] = Field(default_factory=list)
    internal_edges_detailed: list[DetailedEdge] = Field(default_factory=list)


class MetaGraphResult(BaseModel):
    """Output of community detection + meta-graph aggregation."""

    meta_nodes: list[MetaNodeData] = Field(default_factory=list)
    meta_graph: GraphDocument = Field(default_factory=GraphDocument)
    community_map: dict[str, str] = Field(default_factory=dict)
    prepared_communities: list[PreparedCommunity] = Field(default_factory=list)

    def meta_node(self, community_id: str) -> MetaNodeData | None:
        for node in self.meta_nodes:
            if node.community_id == community_id:
                return node
        return None
