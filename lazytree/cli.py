"""Command-line front door for lazytree.

Loads a directory through the filesystem source, expands it to the requested
depth, optionally filters it, and prints the flattened rows.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import load_settings
from .engine import TreeEngine
from .sources import BackgroundFetcher, FileSystemSource, root_node
from .tree_model import FlatNode

logger = logging.getLogger(__name__)

FETCH_WAIT_SECONDS = 5.0


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def wait_for_fetches(engine: TreeEngine, timeout: float = FETCH_WAIT_SECONDS) -> None:
    """Apply background fetches until none are pending or one wait times out."""
    while engine.pending_fetches:
        if engine.drain_fetches(timeout=timeout) == 0:
            logger.warning("gave up waiting for %d pending fetches", engine.pending_fetches)
            return


def expand_to_depth(engine: TreeEngine, depth: int) -> None:
    """Expand rows level by level so the first ``depth`` levels are open."""
    for level in range(depth):
        targets = [row for row in engine.nodes if row.level == level and row.expandable]
        for row in targets:
            engine.expand(row)
        wait_for_fetches(engine)


def format_row(row: FlatNode, expanded: bool) -> str:
    if not row.expandable:
        marker = " "
    elif expanded:
        marker = "-"
    else:
        marker = "+"
    return f"{'  ' * row.level}{marker} {row.label}"


def render_tree(engine: TreeEngine) -> str:
    """Render visible rows as indented text, one row per line."""
    lines = [format_row(row, engine.is_expanded(row)) for row in engine.visible_nodes()]
    return "".join(f"{line}\n" for line in lines)


def main(default_path: Path | None = None) -> None:
    """Parse CLI arguments and print the tree rooted at a directory.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    parser = argparse.ArgumentParser(description="Print a lazily expanded directory tree.")
    parser.add_argument("path", nargs="?", default=None, help="Directory to show. Defaults to current directory.")
    parser.add_argument("--depth", type=_positive_int, default=1, help="Number of levels to expand (default: 1).")
    parser.add_argument("--search", metavar="QUERY", default=None, help="Filter rows by label.")
    parser.add_argument("--show-hidden", action="store_true", help="Include dotfiles.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity to stderr.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path or default_path)
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    if not path.is_dir():
        raise SystemExit(f"Not a directory: {path}")

    settings = load_settings()
    show_hidden = args.show_hidden or settings.show_hidden
    fetcher = BackgroundFetcher(FileSystemSource(show_hidden=show_hidden))
    try:
        engine = TreeEngine(fetch_children=fetcher, settings=settings)
        engine.set_roots([root_node(path)])
        expand_to_depth(engine, args.depth)
        if args.search is not None:
            matches = engine.search(args.search)
            logger.info("%d rows match %r", matches, args.search)
        sys.stdout.write(render_tree(engine))
    finally:
        fetcher.shutdown(wait=False)
