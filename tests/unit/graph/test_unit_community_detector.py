# tests/unit/graph/test_unit_community_detector.py — v1
"""Tests for graph/community_detector.py — Louvain partition and projection."""

from __future__ import annotations

from arstraverse.core.models import GraphDocument, GraphNode, GraphRelationship
from arstraverse.graph.community_detector import (
    build_undirected_projection,
    detect_communities,
)


def _node(node_id: str) -> GraphNode:
    return GraphNode(id=node_id, name=node_id.upper(), label="Entity")


class TestBuildUndirectedProjection:
    def test_nodes_in_input_order(self):
        graph = GraphDocument(nodes=[_node("c"), _node("a"), _node("b")])
        projection = build_undirected_projection(graph)
        assert list(projection.nodes) == ["c", "a", "b"]

    def test_parallel_edges_collapse_first_wins(self):
        graph = GraphDocument(
            nodes=[_node("a"), _node("b")],
            relationships=[
                GraphRelationship(id="r1", type="FIRST", source_id="a", target_id="b"),
                GraphRelationship(id="r2", type="SECOND", source_id="b", target_id="a"),
            ],
        )
        projection = build_undirected_projection(graph)
        assert projection.number_of_edges() == 1
        assert projection.edges["a", "b"]["type"] == "FIRST"
        assert projection.edges["a", "b"]["weight"] == 1

    def test_missing_endpoint_skipped(self):
        graph = GraphDocument(
            nodes=[_node("a")],
            relationships=[
                GraphRelationship(id="r1", type="T", source_id="a", target_id="ghost"),
            ],
        )
        projection = build_undirected_projection(graph)
        assert projection.number_of_edges() == 0
        assert "ghost" not in projection


class TestDetectCommunities:
    def test_empty_graph(self):
        assert detect_communities(GraphDocument()) == {}

    def test_edgeless_graph_gives_singletons(self):
        graph = GraphDocument(nodes=[_node("a"), _node("b"), _node("c")])
        assert detect_communities(graph) == {"a": "0", "b": "1", "c": "2"}

    def test_total_assignment(self, graph_with_isolated_pair):
        community_map = detect_communities(graph_with_isolated_pair)
        assert set(community_map) == {n.id for n in graph_with_isolated_pair.nodes}

    def test_two_cliques_split(self, two_cluster_graph):
        community_map = detect_communities(two_cluster_graph)
        assert {community_map[n] for n in ("a1", "a2", "a3", "a4")} == {"0"}
        assert {community_map[n] for n in ("b1", "b2", "b3", "b4")} == {"1"}

    def test_ids_numbered_by_first_appearance(self, two_cluster_graph):
        reordered = GraphDocument(
            nodes=list(reversed(two_cluster_graph.nodes)),
            relationships=two_cluster_graph.relationships,
        )
        community_map = detect_communities(reordered)
        assert community_map["b4"] == "0"
        assert community_map["a1"] == "1"

    def test_deterministic_for_fixed_seed(self, graph_with_isolated_pair):
        first = detect_communities(graph_with_isolated_pair, seed=7)
        second = detect_communities(graph_with_isolated_pair, seed=7)
        assert first == second

    def test_relationship_to_unknown_node_ignored(self, two_cluster_graph):
        graph = GraphDocument(
            nodes=two_cluster_graph.nodes,
            relationships=two_cluster_graph.relationships + [
                GraphRelationship(id="dangling", type="T", source_id="a1", target_id="zz"),
            ],
        )
        community_map = detect_communities(graph)
        assert "zz" not in community_map
        assert len(community_map) == 8
