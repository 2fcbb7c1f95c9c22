# src/graph/meta_graph_builder.py — v1
"""Meta-graph builder — collapse a partitioned graph into community nodes.

Every relationship is classified as internal (both endpoints in the same
community) or external (different communities). Internal edges are kept
per community for display; external edges are aggregated per unordered
community pair into a single meta-edge.

All aggregation uses insertion-ordered dicts so that identical input
yields identical meta-edge ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from arstraverse.core.models import (
    GraphDocument,
    GraphNode,
    GraphRelationship,
    coerce_properties,
)
from arstraverse.graph.community_detector import detect_communities
from arstraverse.graph.models import (
    UNASSIGNED_COMMUNITY,
    DetailedEdge,
    ExternalConnection,
    InternalEdge,
    MetaGraphResult,
    MetaNodeData,
    PreparedCommunity,
    PreparedMemberNode,
)

if TYPE_CHECKING:
    from arstraverse.config.settings import Settings

logger = logging.getLogger(__name__)

META_NODE_LABEL = "Community"
DEFAULT_INTERNAL_EDGE_LIMIT = 20
DEFAULT_MEMBER_NAME_SAMPLE = 10
DEFAULT_EDGE_PREVIEW = 10


@dataclass
class _EdgeBundle:
    """Running count + ordered distinct types for a community pair."""

    source: str
    target: str
    count: int = 0
    types: dict[str, None] = field(default_factory=dict)

    def add(self, rel_type: str) -> None:
        self.count += 1
        self.types.setdefault(rel_type, None)


def pair_key(source_community: str, target_community: str) -> tuple[str, str]:
    """Return (source, target) for an unordered community pair.

    Orientation follows the lexicographically smaller of "A-B" / "B-A".
    The returned tuple identifies the pair; the joined string does not,
    since community ids may themselves contain "-".
    """
    edge_key = f"{source_community}-{target_community}"
    reverse_key = f"{target_community}-{source_community}"
    if edge_key <= reverse_key:
        return source_community, target_community
    return target_community, source_community


def build_meta_graph(
    graph: GraphDocument,
    community_map: dict[str, str],
    titles: dict[str, str] | None = None,
    internal_edge_limit: int = DEFAULT_INTERNAL_EDGE_LIMIT,
    member_name_sample: int = DEFAULT_MEMBER_NAME_SAMPLE,
) -> MetaGraphResult:
    """Aggregate a partitioned graph into meta nodes and a meta-graph.

    Args:
        graph: Raw knowledge graph.
        community_map: node id -> community id. Nodes missing from the map
            fall into the ``unassigned`` community.
        titles: Optional community id -> title, used as meta node name.
        internal_edge_limit: Max internal edges kept per community.
        member_name_sample: Member names listed in meta node properties.

    Returns:
        MetaGraphResult (``prepared_communities`` left empty).
    """
    titles = titles or {}
    node_index = graph.node_index()

    groups: dict[str, list[str]] = {}
    full_map: dict[str, str] = {}
    for node_id in node_index:
        cid = community_map.get(node_id, UNASSIGNED_COMMUNITY)
        groups.setdefault(cid, []).append(node_id)
        full_map[node_id] = cid

    internal: dict[str, list[InternalEdge]] = {}
    external: dict[str, dict[str, _EdgeBundle]] = {}
    bundles: dict[tuple[str, str], _EdgeBundle] = {}

    for rel in graph.relationships:
        source = node_index.get(rel.source_id)
        target = node_index.get(rel.target_id)
        if source is None or target is None:
            logger.debug("Skipping relationship %s with missing endpoint", rel.id)
            continue

        source_cid = full_map[source.id]
        target_cid = full_map[target.id]

        if source_cid == target_cid:
            internal.setdefault(source_cid, []).append(InternalEdge(
                source_name=source.name, target_name=target.name, type=rel.type,
            ))
            continue

        for cid, other in ((source_cid, target_cid), (target_cid, source_cid)):
            neighbors = external.setdefault(cid, {})
            if other not in neighbors:
                neighbors[other] = _EdgeBundle(source=cid, target=other)
            neighbors[other].add(rel.type)

        key = pair_key(source_cid, target_cid)
        if key not in bundles:
            bundles[key] = _EdgeBundle(source=key[0], target=key[1])
        bundles[key].add(rel.type)

    meta_nodes: list[MetaNodeData] = []
    for cid, member_ids in groups.items():
        connections = [
            ExternalConnection(
                target_community_id=other,
                edge_count=bundle.count,
                edge_types=list(bundle.types),
            )
            for other, bundle in external.get(cid, {}).items()
        ]
        meta_nodes.append(MetaNodeData(
            community_id=cid,
            member_node_ids=list(member_ids),
            member_node_names=[node_index[n].name for n in member_ids],
            size=len(member_ids),
            title=titles.get(cid),
            internal_edges=internal.get(cid, [])[:internal_edge_limit],
            external_connections=connections,
            has_external_connections=bool(connections),
        ))

    meta_graph_nodes = [
        GraphNode(
            id=meta.community_id,
            name=meta.title or f"Community {meta.community_id}",
            label=META_NODE_LABEL,
            properties={
                "size": str(meta.size),
                "memberCount": str(meta.size),
                "memberNames": ", ".join(meta.member_node_names[:member_name_sample]),
            },
        )
        for meta in meta_nodes
    ]

    meta_graph_relationships: list[GraphRelationship] = []
    for index, bundle in enumerate(bundles.values()):
        if not bundle.source or not bundle.target:
            logger.error(
                "Invalid meta-edge endpoints %r -> %r; skipping",
                bundle.source, bundle.target,
            )
            continue
        meta_graph_relationships.append(GraphRelationship(
            id=f"meta-edge-{index}",
            type=", ".join(bundle.types),
            properties={
                "weight": str(bundle.count),
                "edgeCount": str(bundle.count),
            },
            source_id=bundle.source,
            target_id=bundle.target,
        ))

    logger.info(
        "Built meta-graph: %d communities, %d meta-edges from %d relationships",
        len(meta_nodes), len(meta_graph_relationships), len(graph.relationships),
    )

    return MetaGraphResult(
        meta_nodes=meta_nodes,
        meta_graph=GraphDocument(
            nodes=meta_graph_nodes, relationships=meta_graph_relationships,
        ),
        community_map=full_map,
    )


def format_internal_edges(edges: list[DetailedEdge], limit: int) -> str | None:
    """Compact 'src --[type]--> tgt' listing for the first ``limit`` edges."""
    text = ", ".join(
        f"{e.source_name} --[{e.type}]--> {e.target_name}" for e in edges[:limit]
    )
    return text or None


def format_external_connections(connections: list[ExternalConnection]) -> str | None:
    text = ", ".join(
        f"Community {c.target_community_id} "
        f"({c.edge_count} edges: {', '.join(c.edge_types)})"
        for c in connections
    )
    return text or None


def prepare_communities(
    graph: GraphDocument,
    community_map: dict[str, str],
    meta_nodes: list[MetaNodeData],
    edge_preview: int = DEFAULT_EDGE_PREVIEW,
) -> list[PreparedCommunity]:
    """Build the per-community projection used for narrative generation.

    Detailed internal edges are NOT capped. They are listed member by
    member (member order), each member's outgoing relationships in graph
    order, which is the same order a persisted story rebuilds them in.
    """
    node_index = graph.node_index()
    outgoing: dict[str, list[GraphRelationship]] = {}
    for rel in graph.relationships:
        outgoing.setdefault(rel.source_id, []).append(rel)

    prepared: list[PreparedCommunity] = []
    for meta in meta_nodes:
        members = [node_index[n] for n in meta.member_node_ids if n in node_index]
        detailed: list[DetailedEdge] = []
        for member in members:
            for rel in outgoing.get(member.id, []):
                target = node_index.get(rel.target_id)
                if target is None:
                    continue
                if community_map.get(target.id, UNASSIGNED_COMMUNITY) != meta.community_id:
                    continue
                detailed.append(DetailedEdge(
                    source_id=member.id,
                    source_name=member.name,
                    target_id=target.id,
                    target_name=target.name,
                    type=rel.type,
                    properties=coerce_properties(rel.properties),
                ))

        prepared.append(PreparedCommunity(
            community_id=meta.community_id,
            member_node_names=[m.name for m in members],
            member_node_labels=[m.label for m in members],
            internal_edges=format_internal_edges(detailed, edge_preview),
            external_connections=format_external_connections(meta.external_connections),
            member_nodes=[
                PreparedMemberNode(
                    id=m.id, name=m.name, label=m.label,
                    properties=coerce_properties(m.properties),
                )
                for m in members
            ],
            internal_edges_detailed=detailed,
        ))
    return prepared


def filter_small_communities(
    result: MetaGraphResult, min_community_size: int,
) -> MetaGraphResult:
    """Drop isolated communities of size <= ``min_community_size``.

    Communities with external connections are always kept. Dropped
    communities have no meta-edges, so relationships are left untouched.
    The community map is restricted to nodes of kept communities.
    """
    kept = [
        m for m in result.meta_nodes
        if m.has_external_connections or m.size > min_community_size
    ]
    kept_ids = {m.community_id for m in kept}
    dropped = len(result.meta_nodes) - len(kept)
    if dropped:
        logger.debug(
            "Filtered %d isolated communities with size <= %d",
            dropped, min_community_size,
        )

    return result.model_copy(update={
        "meta_nodes": kept,
        "meta_graph": GraphDocument(
            nodes=[n for n in result.meta_graph.nodes if n.id in kept_ids],
            relationships=list(result.meta_graph.relationships),
        ),
        "community_map": {
            node_id: cid for node_id, cid in result.community_map.items()
            if cid in kept_ids
        },
        "prepared_communities": [
            p for p in result.prepared_communities if p.community_id in kept_ids
        ],
    })


def generate_meta_graph(
    graph: GraphDocument | None,
    settings: Settings | None = None,
) -> MetaGraphResult | None:
    """Detect communities and build the meta-graph for a raw graph.

    Returns None when there is no graph or it has no nodes, and also when
    detection or aggregation fails (the failure is logged, not raised).
    """
    if graph is None or not graph.nodes:
        return None

    resolution = 1.0 if settings is None else settings.community_detection_resolution
    seed = 42 if settings is None else settings.community_detection_seed
    min_size = 3 if settings is None else settings.community_min_size
    edge_limit = (
        DEFAULT_INTERNAL_EDGE_LIMIT if settings is None
        else settings.meta_internal_edge_limit
    )
    name_sample = (
        DEFAULT_MEMBER_NAME_SAMPLE if settings is None
        else settings.meta_member_name_sample
    )
    preview = DEFAULT_EDGE_PREVIEW if settings is None else settings.prepared_edge_preview

    try:
        community_map = detect_communities(graph, resolution=resolution, seed=seed)
        result = build_meta_graph(
            graph,
            community_map,
            internal_edge_limit=edge_limit,
            member_name_sample=name_sample,
        )
        result.prepared_communities = prepare_communities(
            graph, result.community_map, result.meta_nodes, edge_preview=preview,
        )
    except Exception:
        logger.exception("Failed to generate meta graph")
        return None

    return filter_small_communities(result, min_size)
