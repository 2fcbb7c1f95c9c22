# src/graph/community_detector.py — v1
"""Community detection via Louvain modularity maximization.

Pure function: takes a GraphDocument, returns a total node -> community
assignment. Detection runs on an undirected, unweighted projection of the
graph: parallel relationships between the same pair of nodes collapse into
a single weight-1 edge (first relationship wins).
"""

from __future__ import annotations

import logging

import networkx as nx

from arstraverse.core.models import GraphDocument

logger = logging.getLogger(__name__)


def build_undirected_projection(graph: GraphDocument) -> nx.Graph:
    """Project a GraphDocument onto an undirected, unweighted NetworkX graph.

    Nodes are added in input order. Relationships whose endpoints are not
    graph nodes are skipped.
    """
    projection = nx.Graph()
    for node in graph.nodes:
        projection.add_node(node.id, name=node.name, label=node.label)

    for rel in graph.relationships:
        if not projection.has_node(rel.source_id) or not projection.has_node(rel.target_id):
            logger.debug(
                "Skipping relationship %s with missing endpoint: %s -> %s",
                rel.id, rel.source_id, rel.target_id,
            )
            continue
        if projection.has_edge(rel.source_id, rel.target_id):
            continue
        projection.add_edge(
            rel.source_id, rel.target_id, type=rel.type, weight=1,
        )

    return projection


def detect_communities(
    graph: GraphDocument,
    resolution: float = 1.0,
    seed: int | None = 42,
) -> dict[str, str]:
    """Assign every node of the graph to exactly one community.

    Args:
        graph: Raw knowledge graph.
        resolution: Louvain resolution (higher = more, smaller communities).
        seed: Random seed for reproducibility (None = non-deterministic).

    Returns:
        Map node id -> community id. Community ids are stringified integers
        numbered by first appearance of a member in ``graph.nodes``.
    """
    if not graph.nodes:
        return {}

    projection = build_undirected_projection(graph)

    if projection.number_of_edges() == 0:
        partition = [{n} for n in projection.nodes]
    else:
        partition = nx.community.louvain_communities(
            projection, weight="weight", resolution=resolution, seed=seed,
        )

    node_to_block: dict[str, int] = {}
    for block_index, members in enumerate(partition):
        for member in members:
            node_to_block[member] = block_index

    # Renumber blocks by first appearance so ids do not depend on set order
    block_to_community: dict[int, str] = {}
    community_map: dict[str, str] = {}
    for node in graph.nodes:
        block = node_to_block[node.id]
        if block not in block_to_community:
            block_to_community[block] = str(len(block_to_community))
        community_map[node.id] = block_to_community[block]

    logger.info(
        "Detected %d communities over %d nodes / %d undirected edges",
        len(block_to_community),
        projection.number_of_nodes(),
        projection.number_of_edges(),
    )
    return community_map
