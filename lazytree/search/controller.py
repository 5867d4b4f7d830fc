"""Search mode: snapshot, full expansion, filtering, and exact restore."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..tree_model import FlatNode, TreeNode
from .matching import label_matches, normalize_query, relevance_key

if TYPE_CHECKING:
    from ..engine.engine import TreeEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchSnapshot:
    """Flat list and expansion state captured when search mode starts."""

    rows: list[FlatNode]
    expanded: frozenset[FlatNode]


class TreeSearch:
    """Filters an engine's flat list by label and restores it afterwards.

    Search never fetches: only children already cached or shipped with the
    domain nodes are expanded. Rows keep their levels; non-matching rows
    without matching descendants are hidden through ``visible``.

    ``generation`` advances whenever search mode starts or ends, so fetches
    can tell which list they were issued against.
    """

    def __init__(
        self,
        engine: "TreeEngine",
        search_stop: Callable[[TreeNode], bool] | None = None,
    ) -> None:
        self._engine = engine
        self._search_stop = search_stop
        self._snapshot: SearchSnapshot | None = None
        self._pool: dict[int, FlatNode] = {}
        self.query = ""
        self.generation = 0

    @property
    def active(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> SearchSnapshot | None:
        return self._snapshot

    def search(self, query: str) -> int:
        """Filter rows by ``query`` and return the number of matching rows.

        A blank query ends search mode instead.
        """
        needle = normalize_query(query)
        if not needle:
            self.clear_search()
            return 0

        engine = self._engine
        if self._snapshot is None:
            self._snapshot = SearchSnapshot(rows=engine.nodes, expanded=engine.tracker.snapshot())
            self.generation += 1
            self._pool = {id(row.data): row for row in self._snapshot.rows}
            logger.debug("search started with %d rows", len(self._snapshot.rows))
        self.query = query

        rows: list[FlatNode] = []
        expanded: list[FlatNode] = []
        used: set[int] = set()
        match_count = 0

        def row_for(node: TreeNode, level: int) -> FlatNode:
            existing = self._pool.get(id(node))
            if existing is not None and existing.level == level and id(existing) not in used:
                used.add(id(existing))
                return existing
            created = engine.make_node(node, level)
            used.add(id(created))
            self._pool.setdefault(id(node), created)
            return created

        def ordered(siblings: list[FlatNode]) -> list[FlatNode]:
            return sorted(siblings, key=lambda row: relevance_key(row.label, needle))

        def walk(row: FlatNode) -> bool:
            """Emit ``row`` and its subtree; return whether anything in it matches."""
            nonlocal match_count
            rows.append(row)
            matched = label_matches(row.label, needle)
            if matched:
                match_count += 1
            descendant_matched = False
            children = None
            if row.expandable and not row.loading and not self._stops_at(row.data):
                children = engine.cached_children(row.data)
            if children is not None:
                expanded.append(row)
                child_rows = [row_for(child, row.level + 1) for child in children]
                for child_row in ordered(child_rows):
                    if walk(child_row):
                        descendant_matched = True
            row.visible = matched or descendant_matched
            return row.visible

        top_rows = []
        for row in self._snapshot.rows:
            if row.level == 0:
                used.add(id(row))
                top_rows.append(row)
        for row in ordered(top_rows):
            walk(row)

        engine.install_rows(rows, expanded)
        logger.debug("search %r matched %d of %d rows", query, match_count, len(rows))
        return match_count

    def clear_search(self) -> bool:
        """Restore the pre-search list and expansion state; ``False`` when idle."""
        snapshot = self._snapshot
        if snapshot is None:
            return False
        self._snapshot = None
        self._pool = {}
        self.query = ""
        self.generation += 1
        for row in snapshot.rows:
            row.visible = True
        self._engine.install_rows(snapshot.rows, snapshot.expanded)
        logger.debug("search cleared, restored %d rows", len(snapshot.rows))
        return True

    def _stops_at(self, node: TreeNode) -> bool:
        return self._search_stop is not None and bool(self._search_stop(node))


__all__ = [
    "SearchSnapshot",
    "TreeSearch",
]
