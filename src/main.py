# src/main.py — v1
"""CLI entry point — metagraph and story commands.

Usage:
    arstraverse metagraph <graph.json> [-o out.json] [--min-size N]
    arstraverse story show --workspace W --user U [--db PATH]
    arstraverse story history --workspace W --user U [--db PATH]
    arstraverse story consistency --workspace W --user U [--db PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from arstraverse.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="arstraverse",
        description=f"ArsTraverse v{__version__} — Community meta-graphs and stories",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- metagraph ---
    p_meta = subparsers.add_parser(
        "metagraph", help="Detect communities and build the meta-graph of a graph file",
    )
    p_meta.add_argument("graph", type=Path, help="Path to a GraphDocument JSON file")
    p_meta.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the result to this file (default: stdout)",
    )
    p_meta.add_argument(
        "--min-size", type=int, default=None,
        help="Drop isolated communities with at most this many members",
    )
    p_meta.set_defaults(func=_cmd_metagraph)

    # --- story ---
    p_story = subparsers.add_parser("story", help="Inspect a saved story")
    story_sub = p_story.add_subparsers(dest="story_command")
    for name, func, help_text in (
        ("show", _cmd_story_show, "Print the live story of a workspace"),
        ("history", _cmd_story_history, "List saved snapshots, newest first"),
        ("consistency", _cmd_story_consistency, "Check topic-space consistency"),
    ):
        p = story_sub.add_parser(name, help=help_text)
        p.add_argument("--workspace", required=True, help="Workspace ID")
        p.add_argument("--user", required=True, help="Acting user ID")
        p.add_argument(
            "--db", type=Path, default=None,
            help="Story database path (default: DATABASE_PATH setting)",
        )
        p.set_defaults(func=func)

    return parser


async def _cmd_metagraph(args: argparse.Namespace) -> int:
    """Generate the meta-graph for a graph file."""
    from arstraverse.config.settings import load_settings
    from arstraverse.core.models import GraphDocument
    from arstraverse.graph.meta_graph_builder import generate_meta_graph

    graph_path: Path = args.graph
    if not graph_path.exists():
        logger.error("File not found: %s", graph_path)
        return 1

    graph = GraphDocument.model_validate_json(graph_path.read_text(encoding="utf-8"))
    overrides = {}
    if args.min_size is not None:
        overrides["community_min_size"] = args.min_size
    settings = load_settings(**overrides)

    result = generate_meta_graph(graph, settings)
    if result is None:
        logger.error("No meta-graph generated for %s", graph_path)
        return 1

    text = result.model_dump_json(indent=2)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text, encoding="utf-8")
        logger.info(
            "Wrote %d communities to %s", len(result.meta_nodes), args.output,
        )
    else:
        print(text)
    return 0


def _open_service(args: argparse.Namespace):
    from arstraverse.config.settings import load_settings
    from arstraverse.storage.store_factory import create_story_store
    from arstraverse.story.service import StoryService

    overrides = {}
    if args.db is not None:
        overrides["database_path"] = args.db
    settings = load_settings(**overrides)
    store = create_story_store(settings)
    return store, StoryService(store, edge_preview=settings.prepared_edge_preview)


async def _cmd_story_show(args: argparse.Namespace) -> int:
    store, service = _open_service(args)
    try:
        view = await service.get(args.workspace, args.user)
    finally:
        store.close()

    if view is None:
        print(f"No story for workspace {args.workspace}")
        return 1
    print(view.model_dump_json(indent=2))
    return 0


async def _cmd_story_history(args: argparse.Namespace) -> int:
    store, service = _open_service(args)
    try:
        entries = await service.list_history(args.workspace, args.user)
    finally:
        store.close()

    print(f"\nHistory for workspace {args.workspace}: {len(entries)} snapshot(s)")
    for entry in entries:
        line = f"  {entry.id}  {entry.created_at.isoformat()}  by {entry.saved_by_id}"
        if entry.description:
            line += f"  {entry.description}"
        print(line)
    return 0


async def _cmd_story_consistency(args: argparse.Namespace) -> int:
    store, service = _open_service(args)
    try:
        result = await service.check_consistency(args.workspace, args.user)
    finally:
        store.close()

    print(json.dumps(result.model_dump(), indent=2))
    return 0 if result.is_consistent else 2


def _setup_logging(verbose: bool) -> None:
    """Apply the logging settings on stderr; -v forces DEBUG."""
    from arstraverse.config.settings import load_settings
    from arstraverse.logging.logger import setup_logging_from_settings

    settings = load_settings()
    if verbose:
        settings = settings.model_copy(update={"log_level": "DEBUG"})
    setup_logging_from_settings(settings, stream=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
