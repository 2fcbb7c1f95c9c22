# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

from arstraverse.logging.context import (
    clear_context,
    get_context,
    set_story_context,
    set_workspace_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.workspace_id is None
        assert ctx.story_id is None
        assert ctx.actor_id is None
        assert ctx.operation is None

    def test_set_workspace_context(self):
        set_workspace_context("ws1", "alice", "story.get")
        ctx = get_context()
        assert ctx.workspace_id == "ws1"
        assert ctx.actor_id == "alice"
        assert ctx.operation == "story.get"

    def test_workspace_context_resets_story(self):
        set_workspace_context("ws1", "alice")
        set_story_context("s1")
        set_workspace_context("ws2", "alice")
        assert get_context().story_id is None

    def test_as_dict_filters_none(self):
        set_workspace_context("ws1", None)
        d = get_context().as_dict()
        assert d == {"workspace_id": "ws1"}

    def test_clear(self):
        set_workspace_context("ws1", "alice", "story.upsert")
        set_story_context("s1")
        clear_context()
        ctx = get_context()
        assert ctx.workspace_id is None
        assert ctx.story_id is None
