# src/story/consistency.py — v1
"""Topic-space consistency between a workspace and its story.

Advisory only: an inconsistent result never blocks reads or saves.
"""

from __future__ import annotations

from arstraverse.storage.models import StoryRecord
from arstraverse.story.models import ConsistencyResult


def check_topic_space_consistency(
    workspace_topic_space_ids: list[str],
    story: StoryRecord | None,
) -> ConsistencyResult:
    """Check that the story's topic space is still referenced by the workspace."""
    workspace_ids = list(workspace_topic_space_ids)

    if story is None:
        return ConsistencyResult(
            is_consistent=True,
            workspace_topic_space_ids=workspace_ids,
            story_topic_space_id=None,
            message="Story not found - consistency check skipped",
        )

    story_ts = story.referenced_topic_space_id
    is_consistent = story_ts is not None and story_ts in workspace_ids

    if is_consistent:
        message = "TopicSpace references are consistent"
    elif story_ts is None:
        message = "Story has no referenced TopicSpace"
    else:
        message = (
            f"Story references TopicSpace ({story_ts}) that is not in "
            f"Workspace's referenced TopicSpaces ({', '.join(workspace_ids)})"
        )

    return ConsistencyResult(
        is_consistent=is_consistent,
        workspace_topic_space_ids=workspace_ids,
        story_topic_space_id=story_ts,
        message=message,
    )
