# tests/unit/test_main.py — v1
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest

from arstraverse.logging.logger import JsonFormatter, TextFormatter
from arstraverse.main import _build_parser, main


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self, capsys):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "arstraverse" in capsys.readouterr().out

    def test_metagraph_subcommand(self):
        parser = _build_parser()
        args = parser.parse_args(["metagraph", "graph.json", "-o", "/tmp/out.json"])
        assert args.command == "metagraph"
        assert args.graph == Path("graph.json")
        assert args.output == Path("/tmp/out.json")
        assert args.min_size is None

    def test_metagraph_min_size(self):
        parser = _build_parser()
        args = parser.parse_args(["metagraph", "graph.json", "--min-size", "0"])
        assert args.min_size == 0

    def test_story_subcommand(self):
        parser = _build_parser()
        args = parser.parse_args([
            "story", "history", "--workspace", "ws-1", "--user", "u1", "--db", "/tmp/s.db",
        ])
        assert args.command == "story"
        assert args.story_command == "history"
        assert args.workspace == "ws-1"
        assert args.db == Path("/tmp/s.db")

    def test_story_requires_workspace(self):
        parser = _build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["story", "show", "--user", "u1"])


# ---------------------------------------------------------------------------
# main() integration
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_returns_1(self):
        assert main([]) == 1

    def test_story_without_action_returns_1(self):
        assert main(["story"]) == 1

    def test_metagraph_missing_file_returns_1(self, tmp_path: Path):
        assert main(["metagraph", str(tmp_path / "missing.json")]) == 1

    def test_metagraph_to_file(self, tmp_path: Path, two_cluster_graph):
        graph_file = tmp_path / "graph.json"
        graph_file.write_text(two_cluster_graph.model_dump_json())
        out_file = tmp_path / "out" / "meta.json"

        assert main(["metagraph", str(graph_file), "-o", str(out_file)]) == 0
        payload = json.loads(out_file.read_text())
        assert [m["community_id"] for m in payload["meta_nodes"]] == ["0", "1"]
        assert payload["meta_graph"]["relationships"][0]["type"] == "BRIDGES"

    def test_metagraph_to_stdout(self, tmp_path: Path, two_cluster_graph, capsys):
        graph_file = tmp_path / "graph.json"
        graph_file.write_text(two_cluster_graph.model_dump_json())
        assert main(["metagraph", str(graph_file)]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert len(payload["prepared_communities"]) == 2

    def test_metagraph_empty_graph_returns_1(self, tmp_path: Path):
        graph_file = tmp_path / "graph.json"
        graph_file.write_text('{"nodes": [], "relationships": []}')
        assert main(["metagraph", str(graph_file)]) == 1

    def test_story_commands(
        self, tmp_path: Path, story_service, seed_workspace, story_data, capsys,
    ):
        async def _prepare():
            await seed_workspace()
            await story_service.upsert("ws-1", "ts-1", story_data, "owner")
            await story_service.upsert("ws-1", "ts-1", story_data, "owner")

        asyncio.run(_prepare())
        db = str(tmp_path / "stories.db")
        common = ["--workspace", "ws-1", "--user", "owner", "--db", db]

        assert main(["story", "show", *common]) == 0
        view = json.loads(capsys.readouterr().out)
        assert view["story"]["workspace_id"] == "ws-1"

        assert main(["story", "history", *common]) == 0
        assert "1 snapshot(s)" in capsys.readouterr().out

        assert main(["story", "consistency", *common]) == 0
        assert json.loads(capsys.readouterr().out)["is_consistent"] is True

    def test_story_show_without_story(self, tmp_path: Path, seed_workspace, capsys):
        asyncio.run(seed_workspace())
        db = str(tmp_path / "stories.db")
        assert main(["story", "show", "--workspace", "ws-1", "--user", "owner", "--db", db]) == 1
        assert "No story" in capsys.readouterr().out

    def test_story_access_denied_returns_1(self, tmp_path: Path, seed_workspace):
        asyncio.run(seed_workspace())
        db = str(tmp_path / "stories.db")
        assert main(["story", "show", "--workspace", "ws-1", "--user", "stranger", "--db", db]) == 1


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

class TestCliLogging:
    @pytest.fixture(autouse=True)
    def _isolated_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        for name in ("LOG_LEVEL", "LOG_FORMAT", "LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

    def test_uses_settings_format_and_level(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "text")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        main(["metagraph", str(tmp_path / "missing.json")])

        root = logging.getLogger("arstraverse")
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_verbose_forces_debug(self, tmp_path: Path):
        main(["-v", "metagraph", str(tmp_path / "missing.json")])

        root = logging.getLogger("arstraverse")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_log_file_from_settings(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "logs" / "cli.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        main(["metagraph", str(tmp_path / "missing.json")])

        for handler in logging.getLogger("arstraverse").handlers:
            handler.flush()
        assert "File not found" in log_file.read_text(encoding="utf-8")
