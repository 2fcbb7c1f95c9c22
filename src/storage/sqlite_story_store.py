# src/storage/sqlite_story_store.py — v1
"""SQLite-backed story store.

Uses stdlib sqlite3 in autocommit mode; ``transaction()`` opens an
explicit ``BEGIN IMMEDIATE`` scope so that a story save is all-or-nothing.
Concurrent transactions are serialized, so the last commit wins.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from arstraverse.core.models import GraphDocument, GraphNode, GraphRelationship
from arstraverse.storage.base_story_store import BaseStoryStore
from arstraverse.storage.models import (
    CommunityStoryRecord,
    CommunitySummaryRecord,
    GraphNodeRecord,
    GraphRelationshipRecord,
    MetaGraphNodeRecord,
    MetaGraphNodeWithRelations,
    MetaGraphRelationshipRecord,
    MetaGraphRelationshipWithNodes,
    StoryHistoryRecord,
    StoryRecord,
    StoryWithRelations,
    WorkspaceRecord,
)
from arstraverse.story.errors import StoryIntegrityError, StoryNotFoundError

if TYPE_CHECKING:
    from arstraverse.story.models import (
        MetaEdgeRowData,
        MetaNodeRowData,
        StoryContent,
        StoryRowData,
        SummaryRowData,
    )

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS workspaces (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS workspace_collaborators (
    workspace_id TEXT NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    PRIMARY KEY (workspace_id, user_id)
);
CREATE TABLE IF NOT EXISTS topic_spaces (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS workspace_topic_spaces (
    workspace_id TEXT NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
    topic_space_id TEXT NOT NULL REFERENCES topic_spaces(id),
    PRIMARY KEY (workspace_id, topic_space_id)
);
CREATE TABLE IF NOT EXISTS graph_nodes (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    label TEXT NOT NULL,
    properties TEXT NOT NULL DEFAULT '{}',
    topic_space_id TEXT REFERENCES topic_spaces(id)
);
CREATE TABLE IF NOT EXISTS graph_relationships (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    properties TEXT NOT NULL DEFAULT '{}',
    from_node_id TEXT NOT NULL REFERENCES graph_nodes(id),
    to_node_id TEXT NOT NULL REFERENCES graph_nodes(id),
    topic_space_id TEXT REFERENCES topic_spaces(id)
);
CREATE INDEX IF NOT EXISTS idx_graph_rel_from ON graph_relationships(from_node_id);
CREATE TABLE IF NOT EXISTS stories (
    id TEXT PRIMARY KEY,
    workspace_id TEXT NOT NULL UNIQUE REFERENCES workspaces(id),
    referenced_topic_space_id TEXT REFERENCES topic_spaces(id),
    filter TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE TABLE IF NOT EXISTS meta_graph_nodes (
    id TEXT PRIMARY KEY,
    story_id TEXT NOT NULL REFERENCES stories(id),
    community_id TEXT NOT NULL,
    name TEXT NOT NULL,
    label TEXT NOT NULL,
    properties TEXT NOT NULL DEFAULT '{}',
    size INTEGER NOT NULL,
    has_external_connections INTEGER NOT NULL,
    UNIQUE (story_id, community_id)
);
CREATE TABLE IF NOT EXISTS meta_graph_node_members (
    meta_node_id TEXT NOT NULL REFERENCES meta_graph_nodes(id) ON DELETE CASCADE,
    graph_node_id TEXT NOT NULL REFERENCES graph_nodes(id),
    position INTEGER NOT NULL,
    PRIMARY KEY (meta_node_id, graph_node_id)
);
CREATE TABLE IF NOT EXISTS meta_graph_relationships (
    id TEXT PRIMARY KEY,
    story_id TEXT NOT NULL REFERENCES stories(id),
    type TEXT NOT NULL,
    properties TEXT NOT NULL DEFAULT '{}',
    from_meta_node_id TEXT NOT NULL REFERENCES meta_graph_nodes(id),
    to_meta_node_id TEXT NOT NULL REFERENCES meta_graph_nodes(id)
);
CREATE TABLE IF NOT EXISTS community_summaries (
    id TEXT PRIMARY KEY,
    meta_node_id TEXT NOT NULL UNIQUE REFERENCES meta_graph_nodes(id),
    title TEXT NOT NULL,
    summary TEXT NOT NULL,
    narrative_order INTEGER,
    transition_text TEXT
);
CREATE TABLE IF NOT EXISTS community_stories (
    id TEXT PRIMARY KEY,
    meta_node_id TEXT NOT NULL UNIQUE REFERENCES meta_graph_nodes(id),
    story TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS story_histories (
    id TEXT PRIMARY KEY,
    story_id TEXT NOT NULL REFERENCES stories(id),
    snapshot_data TEXT NOT NULL,
    saved_by_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    description TEXT
);
CREATE INDEX IF NOT EXISTS idx_story_histories_story ON story_histories(story_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def _loads(raw: str | None) -> Any:
    return json.loads(raw) if raw else None


class SqliteStoryStore(BaseStoryStore):
    """SQLite implementation of the story schema."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == ":memory:":
            target = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        self._db_path = target
        self._conn = sqlite3.connect(target, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._tx_lock = asyncio.Lock()

    # --- Transactions ---

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._tx_lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                logger.debug("Rolled back story transaction")
                raise
            self._conn.execute("COMMIT")

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """Group statements; joins an enclosing transaction if one is open."""
        if self._conn.in_transaction:
            yield
            return
        self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    # --- Workspace / topic space collaborators ---

    async def create_workspace(
        self, workspace_id: str, user_id: str, topic_space_ids: list[str] | None = None,
    ) -> WorkspaceRecord:
        with self._atomic():
            self._conn.execute(
                "INSERT INTO workspaces (id, user_id) VALUES (?, ?)",
                (workspace_id, user_id),
            )
            for ts_id in topic_space_ids or []:
                self._conn.execute(
                    "INSERT INTO workspace_topic_spaces (workspace_id, topic_space_id) "
                    "VALUES (?, ?)",
                    (workspace_id, ts_id),
                )
        return WorkspaceRecord(
            id=workspace_id,
            user_id=user_id,
            referenced_topic_space_ids=list(topic_space_ids or []),
        )

    async def add_collaborator(self, workspace_id: str, user_id: str) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO workspace_collaborators (workspace_id, user_id) "
            "VALUES (?, ?)",
            (workspace_id, user_id),
        )

    async def set_workspace_topic_spaces(
        self, workspace_id: str, topic_space_ids: list[str],
    ) -> None:
        with self._atomic():
            self._conn.execute(
                "DELETE FROM workspace_topic_spaces WHERE workspace_id = ?",
                (workspace_id,),
            )
            for ts_id in topic_space_ids:
                self._conn.execute(
                    "INSERT INTO workspace_topic_spaces (workspace_id, topic_space_id) "
                    "VALUES (?, ?)",
                    (workspace_id, ts_id),
                )

    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None:
        row = self._conn.execute(
            "SELECT id, user_id FROM workspaces WHERE id = ?", (workspace_id,)
        ).fetchone()
        if row is None:
            return None
        collaborators = [
            r["user_id"] for r in self._conn.execute(
                "SELECT user_id FROM workspace_collaborators WHERE workspace_id = ? "
                "ORDER BY rowid",
                (workspace_id,),
            )
        ]
        topic_spaces = [
            r["topic_space_id"] for r in self._conn.execute(
                "SELECT topic_space_id FROM workspace_topic_spaces "
                "WHERE workspace_id = ? ORDER BY rowid",
                (workspace_id,),
            )
        ]
        return WorkspaceRecord(
            id=row["id"],
            user_id=row["user_id"],
            collaborator_ids=collaborators,
            referenced_topic_space_ids=topic_spaces,
        )

    async def create_topic_space(self, topic_space_id: str, name: str = "") -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO topic_spaces (id, name) VALUES (?, ?)",
            (topic_space_id, name),
        )

    async def topic_space_exists(self, topic_space_id: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM topic_spaces WHERE id = ?", (topic_space_id,)
        ).fetchone()
        return row is not None

    # --- Raw graph collaborator ---

    async def import_graph(self, topic_space_id: str, graph: GraphDocument) -> None:
        with self._atomic():
            for node in graph.nodes:
                self._conn.execute(
                    """INSERT INTO graph_nodes (id, name, label, properties, topic_space_id)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET
                           name = excluded.name,
                           label = excluded.label,
                           properties = excluded.properties,
                           topic_space_id = excluded.topic_space_id""",
                    (node.id, node.name, node.label,
                     json.dumps(node.properties), topic_space_id),
                )
            node_ids = {n.id for n in graph.nodes}
            for rel in graph.relationships:
                if rel.source_id not in node_ids or rel.target_id not in node_ids:
                    logger.warning(
                        "Skipping relationship %s with endpoint outside the graph", rel.id,
                    )
                    continue
                self._conn.execute(
                    """INSERT INTO graph_relationships
                           (id, type, properties, from_node_id, to_node_id, topic_space_id)
                       VALUES (?, ?, ?, ?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET
                           type = excluded.type,
                           properties = excluded.properties,
                           from_node_id = excluded.from_node_id,
                           to_node_id = excluded.to_node_id,
                           topic_space_id = excluded.topic_space_id""",
                    (rel.id, rel.type, json.dumps(rel.properties),
                     rel.source_id, rel.target_id, topic_space_id),
                )
        logger.info(
            "Imported %d nodes / %d relationships into topic space %s",
            len(graph.nodes), len(graph.relationships), topic_space_id,
        )

    async def get_graph_document(self, topic_space_id: str) -> GraphDocument:
        nodes = [
            GraphNode(
                id=r["id"], name=r["name"], label=r["label"],
                properties=_loads(r["properties"]) or {},
            )
            for r in self._conn.execute(
                "SELECT * FROM graph_nodes WHERE topic_space_id = ? ORDER BY rowid",
                (topic_space_id,),
            )
        ]
        relationships = [
            GraphRelationship(
                id=r["id"], type=r["type"],
                properties=_loads(r["properties"]) or {},
                source_id=r["from_node_id"], target_id=r["to_node_id"],
            )
            for r in self._conn.execute(
                "SELECT * FROM graph_relationships WHERE topic_space_id = ? ORDER BY rowid",
                (topic_space_id,),
            )
        ]
        return GraphDocument(nodes=nodes, relationships=relationships)

    # --- Stories ---

    def _story_row(self, workspace_id: str, include_deleted: bool) -> sqlite3.Row | None:
        sql = "SELECT * FROM stories WHERE workspace_id = ?"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        return self._conn.execute(sql, (workspace_id,)).fetchone()

    def _require_story(self, story_id: str) -> StoryRecord:
        row = self._conn.execute(
            "SELECT * FROM stories WHERE id = ?", (story_id,)
        ).fetchone()
        if row is None:
            raise StoryNotFoundError(f"Story not found: {story_id}")
        return self._to_story(row)

    @staticmethod
    def _to_story(row: sqlite3.Row) -> StoryRecord:
        return StoryRecord(
            id=row["id"],
            workspace_id=row["workspace_id"],
            referenced_topic_space_id=row["referenced_topic_space_id"],
            filter=_loads(row["filter"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
        )

    @staticmethod
    def _to_meta_node(row: sqlite3.Row) -> MetaGraphNodeRecord:
        return MetaGraphNodeRecord(
            id=row["id"],
            story_id=row["story_id"],
            community_id=row["community_id"],
            name=row["name"],
            label=row["label"],
            properties=_loads(row["properties"]) or {},
            size=row["size"],
            has_external_connections=bool(row["has_external_connections"]),
        )

    async def get_story(
        self, workspace_id: str, include_deleted: bool = False,
    ) -> StoryRecord | None:
        row = self._story_row(workspace_id, include_deleted)
        return self._to_story(row) if row is not None else None

    async def get_story_by_id(self, story_id: str) -> StoryRecord | None:
        row = self._conn.execute(
            "SELECT * FROM stories WHERE id = ?", (story_id,)
        ).fetchone()
        return self._to_story(row) if row is not None else None

    async def load_story(
        self, workspace_id: str, include_deleted: bool = True,
    ) -> StoryWithRelations | None:
        row = self._story_row(workspace_id, include_deleted)
        if row is None:
            return None
        story = self._to_story(row)

        meta_rows = self._conn.execute(
            "SELECT * FROM meta_graph_nodes WHERE story_id = ? ORDER BY rowid",
            (story.id,),
        ).fetchall()

        meta_nodes: list[MetaGraphNodeWithRelations] = []
        for meta_row in meta_rows:
            base = self._to_meta_node(meta_row)
            meta_nodes.append(MetaGraphNodeWithRelations(
                **base.model_dump(),
                member_nodes=self._load_members(base.id),
                summary=self._load_summary(base.id),
                story_content=self._load_community_story(base.id),
            ))

        by_id = {m.id: m for m in meta_nodes}
        meta_edges = [
            MetaGraphRelationshipWithNodes(
                id=r["id"],
                story_id=r["story_id"],
                type=r["type"],
                properties=_loads(r["properties"]) or {},
                from_meta_node_id=r["from_meta_node_id"],
                to_meta_node_id=r["to_meta_node_id"],
                from_meta_node=MetaGraphNodeRecord(
                    **by_id[r["from_meta_node_id"]].model_dump(
                        include=set(MetaGraphNodeRecord.model_fields),
                    ),
                ),
                to_meta_node=MetaGraphNodeRecord(
                    **by_id[r["to_meta_node_id"]].model_dump(
                        include=set(MetaGraphNodeRecord.model_fields),
                    ),
                ),
            )
            for r in self._conn.execute(
                "SELECT * FROM meta_graph_relationships WHERE story_id = ? ORDER BY rowid",
                (story.id,),
            )
        ]

        return StoryWithRelations(
            **story.model_dump(), meta_nodes=meta_nodes, meta_edges=meta_edges,
        )

    def _load_members(self, meta_node_id: str) -> list[GraphNodeRecord]:
        member_rows = self._conn.execute(
            """SELECT g.* FROM meta_graph_node_members m
               JOIN graph_nodes g ON g.id = m.graph_node_id
               WHERE m.meta_node_id = ?
               ORDER BY m.position""",
            (meta_node_id,),
        ).fetchall()
        members: list[GraphNodeRecord] = []
        for r in member_rows:
            outgoing = [
                GraphRelationshipRecord(
                    id=rel["id"],
                    type=rel["type"],
                    properties=_loads(rel["properties"]) or {},
                    from_node_id=rel["from_node_id"],
                    to_node_id=rel["to_node_id"],
                )
                for rel in self._conn.execute(
                    "SELECT * FROM graph_relationships WHERE from_node_id = ? ORDER BY rowid",
                    (r["id"],),
                )
            ]
            members.append(GraphNodeRecord(
                id=r["id"],
                name=r["name"],
                label=r["label"],
                properties=_loads(r["properties"]) or {},
                topic_space_id=r["topic_space_id"],
                relationships_from=outgoing,
            ))
        return members

    def _load_summary(self, meta_node_id: str) -> CommunitySummaryRecord | None:
        r = self._conn.execute(
            "SELECT * FROM community_summaries WHERE meta_node_id = ?", (meta_node_id,)
        ).fetchone()
        if r is None:
            return None
        return CommunitySummaryRecord(
            id=r["id"],
            meta_node_id=r["meta_node_id"],
            title=r["title"],
            summary=r["summary"],
            order=r["narrative_order"],
            transition_text=r["transition_text"],
        )

    def _load_community_story(self, meta_node_id: str) -> CommunityStoryRecord | None:
        r = self._conn.execute(
            "SELECT * FROM community_stories WHERE meta_node_id = ?", (meta_node_id,)
        ).fetchone()
        if r is None:
            return None
        return CommunityStoryRecord(
            id=r["id"], meta_node_id=r["meta_node_id"], story=json.loads(r["story"]),
        )

    async def create_story(self, row: StoryRowData) -> StoryRecord:
        story_id = _new_id()
        now = _now()
        self._conn.execute(
            """INSERT INTO stories
                   (id, workspace_id, referenced_topic_space_id, filter, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                story_id,
                row.workspace_id,
                row.referenced_topic_space_id,
                json.dumps(row.filter) if row.filter is not None else None,
                now,
                now,
            ),
        )
        return self._require_story(story_id)

    async def update_story(
        self,
        story_id: str,
        referenced_topic_space_id: str,
        filter: dict | None = None,
    ) -> StoryRecord:
        if filter is not None:
            self._conn.execute(
                """UPDATE stories SET referenced_topic_space_id = ?, filter = ?,
                       updated_at = ?, deleted_at = NULL
                   WHERE id = ?""",
                (referenced_topic_space_id, json.dumps(filter), _now(), story_id),
            )
        else:
            self._conn.execute(
                """UPDATE stories SET referenced_topic_space_id = ?,
                       updated_at = ?, deleted_at = NULL
                   WHERE id = ?""",
                (referenced_topic_space_id, _now(), story_id),
            )
        return self._require_story(story_id)

    async def soft_delete_story(self, story_id: str) -> StoryRecord:
        self._conn.execute(
            "UPDATE stories SET deleted_at = ? WHERE id = ?", (_now(), story_id),
        )
        return self._require_story(story_id)

    async def delete_story_children(self, story_id: str) -> None:
        with self._atomic():
            self._conn.execute(
                "DELETE FROM meta_graph_relationships WHERE story_id = ?", (story_id,),
            )
            self._conn.execute(
                """DELETE FROM community_stories WHERE meta_node_id IN
                       (SELECT id FROM meta_graph_nodes WHERE story_id = ?)""",
                (story_id,),
            )
            self._conn.execute(
                """DELETE FROM community_summaries WHERE meta_node_id IN
                       (SELECT id FROM meta_graph_nodes WHERE story_id = ?)""",
                (story_id,),
            )
            # Member links go with their meta node (ON DELETE CASCADE)
            self._conn.execute(
                "DELETE FROM meta_graph_nodes WHERE story_id = ?", (story_id,),
            )

    async def create_meta_node(
        self, story_id: str, row: MetaNodeRowData,
    ) -> MetaGraphNodeRecord:
        member_ids = list(dict.fromkeys(row.member_node_ids))
        if member_ids:
            placeholders = ", ".join("?" for _ in member_ids)
            found = {
                r["id"] for r in self._conn.execute(
                    f"SELECT id FROM graph_nodes WHERE id IN ({placeholders})",
                    member_ids,
                )
            }
            missing = [m for m in member_ids if m not in found]
            if missing:
                raise StoryIntegrityError(
                    f"Member graph nodes not found for community "
                    f"{row.community_id}: {', '.join(missing)}"
                )

        meta_node_id = _new_id()
        with self._atomic():
            self._conn.execute(
                """INSERT INTO meta_graph_nodes
                       (id, story_id, community_id, name, label, properties,
                        size, has_external_connections)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    meta_node_id,
                    story_id,
                    row.community_id,
                    row.name,
                    row.label,
                    json.dumps(row.properties),
                    row.size,
                    int(row.has_external_connections),
                ),
            )
            self._conn.executemany(
                """INSERT INTO meta_graph_node_members (meta_node_id, graph_node_id, position)
                   VALUES (?, ?, ?)""",
                [(meta_node_id, node_id, pos) for pos, node_id in enumerate(member_ids)],
            )
        return MetaGraphNodeRecord(
            id=meta_node_id,
            story_id=story_id,
            community_id=row.community_id,
            name=row.name,
            label=row.label,
            properties=dict(row.properties),
            size=row.size,
            has_external_connections=row.has_external_connections,
        )

    async def create_meta_edge(
        self,
        story_id: str,
        row: MetaEdgeRowData,
        from_meta_node_id: str,
        to_meta_node_id: str,
    ) -> MetaGraphRelationshipRecord:
        edge_id = _new_id()
        self._conn.execute(
            """INSERT INTO meta_graph_relationships
                   (id, story_id, type, properties, from_meta_node_id, to_meta_node_id)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (edge_id, story_id, row.type, json.dumps(row.properties),
             from_meta_node_id, to_meta_node_id),
        )
        return MetaGraphRelationshipRecord(
            id=edge_id,
            story_id=story_id,
            type=row.type,
            properties=dict(row.properties),
            from_meta_node_id=from_meta_node_id,
            to_meta_node_id=to_meta_node_id,
        )

    async def create_summary(
        self, meta_node_id: str, row: SummaryRowData,
    ) -> CommunitySummaryRecord:
        summary_id = _new_id()
        self._conn.execute(
            """INSERT INTO community_summaries
                   (id, meta_node_id, title, summary, narrative_order, transition_text)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (summary_id, meta_node_id, row.title, row.summary,
             row.order, row.transition_text),
        )
        return CommunitySummaryRecord(
            id=summary_id,
            meta_node_id=meta_node_id,
            title=row.title,
            summary=row.summary,
            order=row.order,
            transition_text=row.transition_text,
        )

    async def create_community_story(
        self, meta_node_id: str, story: StoryContent,
    ) -> CommunityStoryRecord:
        story_id = _new_id()
        self._conn.execute(
            "INSERT INTO community_stories (id, meta_node_id, story) VALUES (?, ?, ?)",
            (story_id, meta_node_id, json.dumps(story)),
        )
        return CommunityStoryRecord(id=story_id, meta_node_id=meta_node_id, story=story)

    # --- History ---

    async def create_history(
        self,
        story_id: str,
        snapshot_data: str,
        saved_by_id: str,
        description: str | None = None,
    ) -> StoryHistoryRecord:
        history_id = _new_id()
        created_at = _now()
        self._conn.execute(
            """INSERT INTO story_histories
                   (id, story_id, snapshot_data, saved_by_id, created_at, description)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (history_id, story_id, snapshot_data, saved_by_id, created_at, description),
        )
        return StoryHistoryRecord(
            id=history_id,
            story_id=story_id,
            snapshot_data=snapshot_data,
            saved_by_id=saved_by_id,
            created_at=created_at,
            description=description,
        )

    @staticmethod
    def _to_history(row: sqlite3.Row) -> StoryHistoryRecord:
        return StoryHistoryRecord(
            id=row["id"],
            story_id=row["story_id"],
            snapshot_data=row["snapshot_data"],
            saved_by_id=row["saved_by_id"],
            created_at=row["created_at"],
            description=row["description"],
        )

    async def list_history(self, story_id: str) -> list[StoryHistoryRecord]:
        return [
            self._to_history(r)
            for r in self._conn.execute(
                """SELECT * FROM story_histories WHERE story_id = ?
                   ORDER BY created_at DESC, rowid DESC""",
                (story_id,),
            )
        ]

    async def get_history(self, history_id: str) -> StoryHistoryRecord | None:
        row = self._conn.execute(
            "SELECT * FROM story_histories WHERE id = ?", (history_id,)
        ).fetchone()
        return self._to_history(row) if row is not None else None

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
