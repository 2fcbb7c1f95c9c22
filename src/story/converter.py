# src/story/converter.py — v1
"""Story model converter — MetaGraphStoryData <-> relational rows.

``convert_to_database`` flattens a story into rows keyed by community id
(row ids are assigned later, at save time). ``convert_from_database``
rebuilds the in-memory shape from an eager-loaded StoryWithRelations.
"""

from __future__ import annotations

import logging
from typing import Any

from arstraverse.core.models import (
    GraphDocument,
    GraphNode,
    GraphRelationship,
    coerce_properties,
)
from arstraverse.graph.meta_graph_builder import (
    DEFAULT_EDGE_PREVIEW,
    format_external_connections,
    format_internal_edges,
)
from arstraverse.graph.models import (
    DetailedEdge,
    ExternalConnection,
    MetaGraphResult,
    PreparedCommunity,
    PreparedMemberNode,
)
from arstraverse.storage.models import (
    MetaGraphNodeWithRelations,
    MetaGraphRelationshipWithNodes,
    StoryWithRelations,
)
from arstraverse.story.errors import StoryIntegrityError
from arstraverse.story.models import (
    MetaEdgeRowData,
    MetaGraphStoryData,
    MetaNodeEntry,
    MetaNodeRowData,
    NarrativeFlowEntry,
    StoryContent,
    StoryContentRowData,
    StoryDatabasePayload,
    StoryRowData,
    SummaryEntry,
    SummaryRowData,
)

logger = logging.getLogger(__name__)


def convert_to_database(
    data: MetaGraphStoryData,
    workspace_id: str,
    referenced_topic_space_id: str,
) -> StoryDatabasePayload:
    """Flatten a story into rows keyed by community id.

    Raises:
        StoryIntegrityError: A meta-graph node has no matching meta node data.
    """
    meta_node_data = {m.community_id: m for m in data.meta_nodes}

    meta_nodes: list[MetaNodeRowData] = []
    for node in data.meta_graph.nodes:
        stats = meta_node_data.get(node.id)
        if stats is None:
            raise StoryIntegrityError(
                f"MetaNode data not found for communityId: {node.id}"
            )
        meta_nodes.append(MetaNodeRowData(
            community_id=node.id,
            name=node.name,
            label=node.label,
            properties=dict(node.properties),
            size=stats.size,
            has_external_connections=stats.has_external_connections,
            member_node_ids=list(stats.member_node_ids),
        ))

    valid_ids = {n.id for n in data.meta_graph.nodes}
    meta_edges: list[MetaEdgeRowData] = []
    for rel in data.meta_graph.relationships:
        if rel.source_id not in valid_ids or rel.target_id not in valid_ids:
            logger.debug(
                "Dropping dangling meta-edge %s: %s -> %s",
                rel.id, rel.source_id, rel.target_id,
            )
            continue
        meta_edges.append(MetaEdgeRowData(
            type=rel.type,
            properties=dict(rel.properties),
            from_community_id=rel.source_id,
            to_community_id=rel.target_id,
        ))

    flow = {f.community_id: f for f in data.narrative_flow}
    summaries = []
    for summary in data.summaries:
        placed = flow.get(summary.community_id)
        summaries.append(SummaryRowData(
            community_id=summary.community_id,
            title=summary.title,
            summary=summary.summary,
            order=placed.order if placed else None,
            transition_text=placed.transition_text if placed else None,
        ))

    stories = [
        StoryContentRowData(community_id=cid, story=story)
        for cid, story in data.detailed_stories.items()
    ]

    return StoryDatabasePayload(
        story=StoryRowData(
            workspace_id=workspace_id,
            referenced_topic_space_id=referenced_topic_space_id,
            filter=data.filter,
        ),
        meta_nodes=meta_nodes,
        meta_edges=meta_edges,
        summaries=summaries,
        stories=stories,
    )


def convert_from_database(
    story: StoryWithRelations,
    edge_preview: int = DEFAULT_EDGE_PREVIEW,
) -> MetaGraphStoryData:
    """Rebuild MetaGraphStoryData from persisted rows.

    Edge endpoints are translated from meta node row ids back to community
    ids; every property bag is coerced to a string map.
    """
    nodes = [
        GraphNode(
            id=m.community_id,
            name=m.name,
            label=m.label,
            properties=coerce_properties(m.properties),
        )
        for m in story.meta_nodes
    ]
    relationships = [
        GraphRelationship(
            id=e.id,
            type=e.type,
            properties=coerce_properties(e.properties),
            source_id=e.from_meta_node.community_id,
            target_id=e.to_meta_node.community_id,
        )
        for e in story.meta_edges
    ]

    meta_nodes = [
        MetaNodeEntry(
            community_id=m.community_id,
            member_node_ids=[n.id for n in m.member_nodes],
            size=m.size,
            has_external_connections=m.has_external_connections,
        )
        for m in story.meta_nodes
    ]

    community_map: dict[str, str] = {}
    for m in story.meta_nodes:
        for member in m.member_nodes:
            community_map[member.id] = m.community_id

    summaries = [
        SummaryEntry(
            community_id=m.community_id,
            title=m.summary.title,
            summary=m.summary.summary,
        )
        for m in story.meta_nodes
        if m.summary is not None
    ]

    narrative_flow = sorted(
        (
            NarrativeFlowEntry(
                community_id=m.community_id,
                order=m.summary.order,
                transition_text=m.summary.transition_text or "",
            )
            for m in story.meta_nodes
            if m.summary is not None and m.summary.order is not None
        ),
        key=lambda f: f.order,
    )

    detailed_stories: dict[str, StoryContent] = {
        m.community_id: m.story_content.story
        for m in story.meta_nodes
        if m.story_content is not None
    }

    prepared = [
        _rebuild_prepared_community(m, story.meta_edges, edge_preview)
        for m in story.meta_nodes
        if m.summary is not None
    ]

    return MetaGraphStoryData(
        meta_graph=GraphDocument(nodes=nodes, relationships=relationships),
        meta_nodes=meta_nodes,
        community_map=community_map,
        summaries=summaries,
        narrative_flow=narrative_flow,
        detailed_stories=detailed_stories,
        prepared_communities=prepared,
        filter=story.filter,
    )


def _rebuild_prepared_community(
    meta_node: MetaGraphNodeWithRelations,
    meta_edges: list[MetaGraphRelationshipWithNodes],
    edge_preview: int,
) -> PreparedCommunity:
    """Recompute the prepared projection of one persisted community.

    Internal edges come from each member's outgoing relationships, keeping
    only those whose target is also a member (same rule as the builder's
    internal/external split).
    """
    members = {n.id: n for n in meta_node.member_nodes}
    detailed: list[DetailedEdge] = []
    for member in meta_node.member_nodes:
        for rel in member.relationships_from:
            target = members.get(rel.to_node_id)
            if target is None:
                continue
            detailed.append(DetailedEdge(
                source_id=member.id,
                source_name=member.name,
                target_id=target.id,
                target_name=target.name,
                type=rel.type,
                properties=coerce_properties(rel.properties),
            ))

    connections: list[ExternalConnection] = []
    for edge in meta_edges:
        if edge.from_meta_node_id == meta_node.id:
            other = edge.to_meta_node.community_id
        elif edge.to_meta_node_id == meta_node.id:
            other = edge.from_meta_node.community_id
        else:
            continue
        connections.append(ExternalConnection(
            target_community_id=other,
            edge_count=_edge_count(edge.properties),
            edge_types=[t for t in edge.type.split(", ") if t],
        ))

    return PreparedCommunity(
        community_id=meta_node.community_id,
        member_node_names=[n.name for n in meta_node.member_nodes],
        member_node_labels=[n.label for n in meta_node.member_nodes],
        internal_edges=format_internal_edges(detailed, edge_preview),
        external_connections=format_external_connections(connections),
        member_nodes=[
            PreparedMemberNode(
                id=n.id, name=n.name, label=n.label,
                properties=coerce_properties(n.properties),
            )
            for n in meta_node.member_nodes
        ],
        internal_edges_detailed=detailed,
    )


def _edge_count(properties: dict[str, Any]) -> int:
    try:
        return int(properties.get("edgeCount", 0))
    except (TypeError, ValueError):
        return 0


def assemble_story_data(
    result: MetaGraphResult,
    summaries: list[SummaryEntry],
    narrative_flow: list[NarrativeFlowEntry],
    detailed_stories: dict[str, StoryContent] | None = None,
    filter: dict[str, Any] | None = None,
) -> MetaGraphStoryData:
    """Join narrative-generation outputs onto a freshly built meta-graph.

    Meta-graph nodes are renamed to their community title when one is known.
    """
    titles = {s.community_id: s.title for s in summaries}
    nodes = [
        n.model_copy(update={"name": titles.get(n.id, n.name)})
        for n in result.meta_graph.nodes
    ]
    return MetaGraphStoryData(
        meta_graph=GraphDocument(
            nodes=nodes, relationships=list(result.meta_graph.relationships),
        ),
        meta_nodes=[
            MetaNodeEntry(
                community_id=m.community_id,
                member_node_ids=list(m.member_node_ids),
                size=m.size,
                has_external_connections=m.has_external_connections,
            )
            for m in result.meta_nodes
        ],
        community_map=dict(result.community_map),
        summaries=list(summaries),
        narrative_flow=sorted(narrative_flow, key=lambda f: f.order),
        detailed_stories=dict(detailed_stories or {}),
        prepared_communities=list(result.prepared_communities),
        filter=filter,
    )
