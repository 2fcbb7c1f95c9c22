# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides small deterministic graphs, a tmp_path-backed SQLite story store
and helpers to seed workspaces and build story data.
No external services — every store lives in a temp directory.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from itertools import combinations

import pytest

from arstraverse.core.models import GraphDocument, GraphNode, GraphRelationship
from arstraverse.graph.meta_graph_builder import generate_meta_graph
from arstraverse.graph.models import MetaGraphResult
from arstraverse.storage.sqlite_story_store import SqliteStoryStore
from arstraverse.story.converter import assemble_story_data
from arstraverse.story.models import MetaGraphStoryData, NarrativeFlowEntry, SummaryEntry
from arstraverse.story.service import StoryService

WORKSPACE_ID = "ws-1"
TOPIC_SPACE_ID = "ts-1"
OWNER_ID = "owner"
COLLABORATOR_ID = "collab"
STRANGER_ID = "stranger"


def _clique(prefix: str, label: str, size: int = 4) -> tuple[list[GraphNode], list[GraphRelationship]]:
    nodes = [
        GraphNode(
            id=f"{prefix}{i}",
            name=f"{prefix.upper()}{i}",
            label=label,
            properties={"rank": i, "active": True},
        )
        for i in range(1, size + 1)
    ]
    rels = [
        GraphRelationship(
            id=f"r-{a.id}-{b.id}",
            type="RELATED_TO",
            properties={"since": 2020},
            source_id=a.id,
            target_id=b.id,
        )
        for a, b in combinations(nodes, 2)
    ]
    return nodes, rels


def build_two_cluster_graph() -> GraphDocument:
    """Two 4-cliques joined by a single BRIDGES edge a1 -> b1."""
    a_nodes, a_rels = _clique("a", "Person")
    b_nodes, b_rels = _clique("b", "Place")
    bridge = GraphRelationship(
        id="r-bridge", type="BRIDGES", properties={}, source_id="a1", target_id="b1",
    )
    return GraphDocument(nodes=a_nodes + b_nodes, relationships=a_rels + b_rels + [bridge])


def build_story_data(result: MetaGraphResult, filter: dict | None = None) -> MetaGraphStoryData:
    """Attach summaries, a narrative flow and detailed stories to every community."""
    summaries = [
        SummaryEntry(
            community_id=m.community_id,
            title=f"Chapter {m.community_id}",
            summary=f"Summary of community {m.community_id}",
        )
        for m in result.meta_nodes
    ]
    flow = [
        NarrativeFlowEntry(
            community_id=m.community_id,
            order=i,
            transition_text="" if i == 0 else f"Then {m.community_id}",
        )
        for i, m in enumerate(result.meta_nodes)
    ]
    stories = {
        m.community_id: {
            "type": "doc",
            "content": [{
                "type": "paragraph",
                "attrs": {"segmentNodeIds": list(m.member_node_ids)},
                "content": [{"type": "text", "text": f"Story {m.community_id}"}],
            }],
        }
        for m in result.meta_nodes
    }
    return assemble_story_data(result, summaries, flow, stories, filter=filter)


# === FIXTURES: Logging isolation ===


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo setup_logging() side effects between tests."""
    yield
    root = logging.getLogger("arstraverse")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


# === FIXTURES: Graphs ===


@pytest.fixture
def two_cluster_graph() -> GraphDocument:
    return build_two_cluster_graph()


@pytest.fixture
def graph_with_isolated_pair(two_cluster_graph: GraphDocument) -> GraphDocument:
    """Two clusters plus a disconnected 2-node component c1 - c2."""
    extra_nodes = [
        GraphNode(id="c1", name="C1", label="Thing"),
        GraphNode(id="c2", name="C2", label="Thing"),
    ]
    extra_rel = GraphRelationship(id="r-c", type="NEAR", source_id="c1", target_id="c2")
    return GraphDocument(
        nodes=two_cluster_graph.nodes + extra_nodes,
        relationships=two_cluster_graph.relationships + [extra_rel],
    )


@pytest.fixture
def meta_graph_result(two_cluster_graph: GraphDocument) -> MetaGraphResult:
    result = generate_meta_graph(two_cluster_graph)
    assert result is not None
    return result


@pytest.fixture
def story_data(meta_graph_result: MetaGraphResult) -> MetaGraphStoryData:
    return build_story_data(meta_graph_result, filter={"labels": ["Person", "Place"]})


# === FIXTURES: Storage ===


@pytest.fixture
def story_store(tmp_path):
    store = SqliteStoryStore(tmp_path / "stories.db")
    yield store
    store.close()


@pytest.fixture
def story_service(story_store: SqliteStoryStore) -> StoryService:
    return StoryService(story_store)


@pytest.fixture
def seed_workspace(
    story_store: SqliteStoryStore, two_cluster_graph: GraphDocument,
) -> Callable[..., Awaitable[None]]:
    """Async helper: topic space + imported graph + workspace with a collaborator."""

    async def _seed(graph: GraphDocument | None = None) -> None:
        await story_store.create_topic_space(TOPIC_SPACE_ID, "Main")
        await story_store.import_graph(TOPIC_SPACE_ID, graph or two_cluster_graph)
        await story_store.create_workspace(WORKSPACE_ID, OWNER_ID, [TOPIC_SPACE_ID])
        await story_store.add_collaborator(WORKSPACE_ID, COLLABORATOR_ID)

    return _seed
