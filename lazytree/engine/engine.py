"""Lazy flat-tree engine: expand/collapse splicing and structural edits.

The engine owns the flat list and is its only writer. Every public
mutation builds a new list, installs it, and then publishes the visible
rows once, so subscribers never observe a half-spliced state. The list
handed out by ``nodes`` is never mutated after it is installed.

Children come from an injected ``fetch_children(node)`` which returns either
the children directly or a ``concurrent.futures.Future``. Futures that finish
later are queued and applied on the owner's thread by ``drain_fetches()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import CancelledError, Future
from contextlib import contextmanager
from dataclasses import replace
from queue import Empty, Queue

from ..config import TreeSettings
from ..events import EventChannel, Subscription
from ..search import TreeSearch
from ..tree_model import (
    FlatNode,
    FlatNodeFactory,
    TreeNode,
    block_end,
    child_indices,
    default_flat_node,
    index_of,
    parent_index,
    root_indices,
    transform,
)
from .cache import ChildrenCache
from .errors import FETCH_FAILURE, MALFORMED_DATA, NodeReplaced, ToggleEvent, TreeError
from .expansion import ExpansionChange, ExpansionTracker
from .splice import bounded_splice

logger = logging.getLogger(__name__)

ChildrenFetcher = Callable[[TreeNode], "Sequence[TreeNode] | Future"]


def default_node_key(node: TreeNode) -> object:
    """Identity key used to de-duplicate siblings: path, else label."""
    return node.path if node.path is not None else node.label


class TreeEngine:
    """Flat list of tree rows with lazy expansion and incremental edits."""

    def __init__(
        self,
        *,
        fetch_children: ChildrenFetcher,
        make_node: FlatNodeFactory = default_flat_node,
        settings: TreeSettings | None = None,
        tracker: ExpansionTracker | None = None,
        node_key: Callable[[TreeNode], object] = default_node_key,
        search_stop: Callable[[TreeNode], bool] | None = None,
    ) -> None:
        self._fetch_children = fetch_children
        self.make_node = make_node
        self.settings = settings or TreeSettings()
        self.tracker = tracker or ExpansionTracker()
        self._node_key = node_key
        self.cache = ChildrenCache()
        self.roots: list[TreeNode] = []
        self._nodes: list[FlatNode] = []

        self.data_changed: EventChannel[list[FlatNode]] = EventChannel("data")
        self.node_toggled: EventChannel[ToggleEvent] = EventChannel("toggle")
        self.node_replaced: EventChannel[NodeReplaced] = EventChannel("replaced")
        self.node_removed: EventChannel[tuple[FlatNode, ...]] = EventChannel("removed")
        self.errors: EventChannel[TreeError] = EventChannel("errors")

        self._tracker_subscription: Subscription | None = None
        self._tracker_sync_depth = 0
        # row -> (request id, search generation at issue time)
        self._pending: dict[FlatNode, tuple[int, int]] = {}
        self._next_request_id = 1
        self._completions: Queue[tuple[FlatNode, int, Future]] = Queue()
        self._search = TreeSearch(self, search_stop=search_stop)

    # ------------------------------------------------------------------ #
    # Read access
    # ------------------------------------------------------------------ #

    @property
    def nodes(self) -> list[FlatNode]:
        """Full flat list including hidden rows; treat as read-only."""
        return self._nodes

    def visible_nodes(self) -> list[FlatNode]:
        return [node for node in self._nodes if node.visible]

    @property
    def pending_fetches(self) -> int:
        return len(self._pending)

    @property
    def search_active(self) -> bool:
        return self._search.active

    def index_of(self, node: FlatNode) -> int | None:
        return index_of(self._nodes, node)

    def is_expanded(self, node: FlatNode) -> bool:
        return node in self.tracker

    def find_by_path(self, path: str) -> FlatNode | None:
        for node in self._nodes:
            if node.data.path == path:
                return node
        return None

    def get_parent(self, node: FlatNode) -> FlatNode:
        """Return the nearest preceding row with a lower level, or ``node`` at level 0."""
        idx = self.index_of(node)
        if idx is None:
            raise LookupError(f"node not in tree: {node!r}")
        parent_idx = parent_index(self._nodes, idx)
        return node if parent_idx is None else self._nodes[parent_idx]

    def cached_children(self, node: TreeNode) -> list[TreeNode] | None:
        """Return children available without fetching, seeding the cache once."""
        if node not in self.cache and node.children is not None:
            self.cache.put(node, self._dedupe(node, node.children))
        return self.cache.get(node)

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def connect(self, subscriber: Callable[[list[FlatNode]], None]) -> Subscription:
        """Subscribe to visible-list updates and receive the current list now."""
        if self._tracker_subscription is None:
            self._tracker_subscription = self.tracker.changed.subscribe(self._on_expansion_change)
        subscription = self.data_changed.subscribe(subscriber)
        try:
            subscriber(self.visible_nodes())
        except Exception:
            logger.exception("subscriber failed on connect")
        return subscription

    def disconnect(self) -> None:
        """Stop following external expansion-tracker edits."""
        if self._tracker_subscription is not None:
            self._tracker_subscription.unsubscribe()
            self._tracker_subscription = None

    def _publish(self) -> None:
        self.data_changed.emit(self.visible_nodes())

    @contextmanager
    def _tracker_sync(self) -> Iterator[None]:
        """Mark tracker edits made by the engine itself so the listener skips them."""
        self._tracker_sync_depth += 1
        try:
            yield
        finally:
            self._tracker_sync_depth -= 1

    def _on_expansion_change(self, change: ExpansionChange) -> None:
        if self._tracker_sync_depth:
            return
        for node in change.removed:
            self._collapse_rows(node)
        for node in change.added:
            # Membership is granted only once children are spliced in.
            self.tracker.collapse(node, notify=False)
            self.expand(node)

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def set_roots(self, roots: Iterable[TreeNode]) -> None:
        """Replace the whole tree with level-0 rows for ``roots``."""
        self._search.clear_search()
        self.roots = self._dedupe(None, roots)
        for node in self._pending:
            node.loading = False
        self._pending.clear()
        self._nodes = transform(self.roots, 0, self.make_node)
        with self._tracker_sync():
            self.tracker.clear()
        logger.debug("loaded %d root rows", len(self._nodes))
        self._publish()

    def install_rows(self, rows: list[FlatNode], expanded: Iterable[FlatNode]) -> None:
        """Install a prepared list and expansion set in one step (search mode)."""
        self._nodes = rows
        with self._tracker_sync():
            self.tracker.restore(expanded)
        self._publish()

    # ------------------------------------------------------------------ #
    # Expand / collapse
    # ------------------------------------------------------------------ #

    def toggle(self, node: FlatNode) -> None:
        """Collapse an expanded node, otherwise expand it (fetching lazily)."""
        if node.loading:
            logger.debug("toggle ignored while %r is loading", node.label)
            return
        if node in self.tracker:
            self.collapse(node)
        else:
            self.expand(node)

    def expand(self, node: FlatNode) -> None:
        self._expand(node, use_cache=True)

    def collapse(self, node: FlatNode) -> None:
        if node not in self.tracker:
            return
        with self._tracker_sync():
            self.tracker.collapse(node)
        self._collapse_rows(node)

    def _collapse_rows(self, node: FlatNode) -> None:
        """Remove the descendant block of ``node``; cached children stay cached."""
        idx = self.index_of(node)
        if idx is None:
            return
        self._remove_rows(idx + 1, block_end(self._nodes, idx))
        self._publish()
        self.node_toggled.emit(ToggleEvent(node, False))

    def _expand(self, node: FlatNode, use_cache: bool) -> None:
        if node.loading or node in self.tracker or not node.expandable:
            return
        if self.index_of(node) is None:
            logger.debug("expand ignored for detached row %r", node.label)
            return
        if use_cache:
            children = self.cached_children(node.data)
            if children is not None:
                self._splice_children(node, children)
                return

        node.loading = True
        request_id = self._next_request_id
        self._next_request_id += 1
        self._pending[node] = (request_id, self._search.generation)
        try:
            result = self._fetch_children(node.data)
        except Exception as exc:
            self._fail_fetch(node, request_id, exc)
            return

        if isinstance(result, Future):
            if result.done():
                self._complete_fetch(node, request_id, result)
                return
            result.add_done_callback(lambda future: self._completions.put((node, request_id, future)))
            self._publish()
            return

        done: Future = Future()
        done.set_result(result)
        self._complete_fetch(node, request_id, done)

    def drain_fetches(self, timeout: float = 0.0) -> int:
        """Apply completed fetches; wait up to ``timeout`` seconds for the first."""
        processed = 0
        while True:
            try:
                if processed == 0 and timeout > 0:
                    node, request_id, future = self._completions.get(timeout=timeout)
                else:
                    node, request_id, future = self._completions.get_nowait()
            except Empty:
                return processed
            self._complete_fetch(node, request_id, future)
            processed += 1

    def _complete_fetch(self, node: FlatNode, request_id: int, future: Future) -> None:
        try:
            fetched = list(future.result())
        except (Exception, CancelledError) as exc:
            self._fail_fetch(node, request_id, exc)
            return

        children = self.cache.put(node.data, self._dedupe(node.data, fetched))
        pending = self._pending.get(node)
        if pending is None or pending[0] != request_id:
            logger.debug("stale fetch for %r cached without splicing", node.label)
            return
        del self._pending[node]
        node.loading = False
        if not children:
            node.expandable = False
        if pending[1] != self._search.generation or not children or self.index_of(node) is None:
            self._publish()
            return
        self._splice_children(node, children)

    def _fail_fetch(self, node: FlatNode, request_id: int, exc: BaseException) -> None:
        pending = self._pending.get(node)
        if pending is not None and pending[0] == request_id:
            del self._pending[node]
            node.loading = False
            self._publish()
        self._report(FETCH_FAILURE, f"failed to load children of {node.label!r}: {exc}", node.data, exc)

    def _splice_children(self, node: FlatNode, children: Sequence[TreeNode]) -> None:
        idx = self.index_of(node)
        if idx is None:
            return
        rows = transform(children, node.level + 1, self.make_node)
        updated = list(self._nodes)
        bounded_splice(updated, idx + 1, rows, self.settings.batch_insert_limit)
        self._nodes = updated
        with self._tracker_sync():
            self.tracker.expand(node)
        self._publish()
        self.node_toggled.emit(ToggleEvent(node, True))

    def expand_all(self, node: FlatNode | None = None) -> None:
        """Expand everything whose children are available without fetching."""
        if self._search.active:
            return
        if node is None:
            start, end = 0, len(self._nodes)
        else:
            start = self.index_of(node)
            if start is None:
                return
            end = block_end(self._nodes, start)

        reusable = {id(row.data): row for row in self._nodes[start:end]}
        rows: list[FlatNode] = []
        expanded: list[FlatNode] = []

        def reuse(child: TreeNode, level: int) -> FlatNode:
            existing = reusable.pop(id(child), None)
            if existing is not None and existing.level == level:
                return existing
            return self.make_node(child, level)

        def walk(row: FlatNode) -> None:
            rows.append(row)
            if not row.expandable or row.loading:
                return
            children = self.cached_children(row.data)
            if children is None:
                return
            expanded.append(row)
            for child in children:
                walk(reuse(child, row.level + 1))

        top_level = self._nodes[start].level if start < end else 0
        for row in self._nodes[start:end]:
            if row.level == top_level:
                reusable.pop(id(row.data), None)
                walk(row)

        kept = set(rows)
        removed = [row for row in self._nodes[start:end] if row not in kept]
        self._cancel_pending(removed)
        self._nodes = self._nodes[:start] + rows + self._nodes[end:]
        with self._tracker_sync():
            self.tracker.discard_many(removed)
            self.tracker.expand_many(expanded)
        self._publish()

    def collapse_all(self) -> None:
        """Keep only level-0 rows."""
        removed = [row for row in self._nodes if row.level > 0]
        self._cancel_pending(removed)
        self._nodes = [row for row in self._nodes if row.level == 0]
        with self._tracker_sync():
            self.tracker.clear()
        self._publish()

    def refresh_node(self, node: FlatNode) -> None:
        """Forget cached children and re-fetch them if ``node`` is expanded."""
        self._end_search_for_mutation()
        if node.loading:
            return
        self.cache.forget_subtree(node.data)
        if node not in self.tracker:
            return
        idx = self.index_of(node)
        if idx is None:
            return
        with self._tracker_sync():
            self.tracker.collapse(node)
        self._remove_rows(idx + 1, block_end(self._nodes, idx))
        self._expand(node, use_cache=False)

    # ------------------------------------------------------------------ #
    # Structural edits
    # ------------------------------------------------------------------ #

    def delete_node(self, node: FlatNode) -> bool:
        """Remove ``node`` with its whole descendant block and uncache it."""
        self._end_search_for_mutation()
        idx = self.index_of(node)
        if idx is None:
            return False
        parent_idx = parent_index(self._nodes, idx)
        parent = self._nodes[parent_idx] if parent_idx is not None else None
        removed = self._remove_rows(idx, block_end(self._nodes, idx))
        self._detach_domain(parent, node.data)
        self.cache.forget_subtree(node.data)
        logger.debug("deleted %r with %d descendants", node.label, len(removed) - 1)
        self._publish()
        self.node_removed.emit(tuple(removed))
        return True

    def insert_node(
        self,
        parent: FlatNode | None,
        child: TreeNode,
        position: int | None = None,
    ) -> FlatNode | None:
        """Insert ``child`` under ``parent`` (``None`` for a root).

        The child is added to the parent's cached children; a row is created
        only when the parent is expanded. Returns the new row, if any.
        """
        self._end_search_for_mutation()
        removed = self._drop_duplicate_sibling(parent, child)
        row = self._place_child(parent, child, position)
        if row is not None or removed:
            self._publish()
        if removed:
            self.node_removed.emit(tuple(removed))
        return row

    def _place_child(self, parent: FlatNode | None, child: TreeNode, position: int | None) -> FlatNode | None:
        if parent is None:
            if position is None or position > len(self.roots):
                position = len(self.roots)
            position = max(0, position)
            self.roots.insert(position, child)
            tops = root_indices(self._nodes)
            at = tops[position] if position < len(tops) else len(self._nodes)
            return self._insert_row(at, child, 0)

        if self.cached_children(parent.data) is None:
            # Not fetched yet; the next fetch is expected to include the child.
            return None
        inserted_at = self.cache.insert_child(parent.data, child, position)
        parent_idx = self.index_of(parent)
        if parent_idx is None or parent not in self.tracker:
            return None
        siblings = child_indices(self._nodes, parent_idx)
        at = siblings[inserted_at] if inserted_at < len(siblings) else block_end(self._nodes, parent_idx)
        return self._insert_row(at, child, parent.level + 1)

    def rename_or_move(self, old_path: str, new_path: str, new_label: str | None = None) -> FlatNode | None:
        """Rename or move the row at ``old_path``; returns its replacement row.

        Leaves and collapsed containers are re-flattened in place. An expanded
        container loses its subtree and is re-fetched under ``new_path``,
        since cached descendants carry paths relative to the old location.
        """
        self._end_search_for_mutation()
        node = self.find_by_path(old_path)
        if node is None:
            logger.debug("rename skipped, %r not in tree", old_path)
            return None
        if node.loading:
            self._cancel_pending([node])

        label = new_label if new_label is not None else self._last_segment(new_path)
        was_expanded = node in self.tracker
        renamed_children = node.data.children if node.data.leaf else None
        renamed = replace(node.data, label=label, path=new_path, children=renamed_children)

        idx = self.index_of(node)
        parent_idx = parent_index(self._nodes, idx)
        parent = self._nodes[parent_idx] if parent_idx is not None else None
        self.cache.forget_subtree(node.data)

        if self._parent_path(old_path) == self._parent_path(new_path):
            self._remove_rows(idx + 1, block_end(self._nodes, idx))
            new_row = self.make_node(renamed, node.level)
            updated = list(self._nodes)
            updated[idx] = new_row
            self._nodes = updated
            with self._tracker_sync():
                self.tracker.collapse(node)
            if parent is None:
                self._replace_root(node.data, renamed)
            else:
                self.cache.replace_child(parent.data, node.data, renamed)
        else:
            removed = self._remove_rows(idx, block_end(self._nodes, idx))
            self._detach_domain(parent, node.data)
            new_row = self._attach_moved(renamed, self._parent_path(new_path))
            if new_row is None:
                logger.debug("moved %r out of the visible rows", old_path)
                self._publish()
                self.node_removed.emit(tuple(removed))
                return None

        logger.debug("renamed %r to %r", old_path, new_path)
        self._publish()
        self.node_replaced.emit(NodeReplaced(node, new_row))
        if was_expanded:
            self._expand(new_row, use_cache=False)
        return new_row

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _end_search_for_mutation(self) -> None:
        if self._search.active:
            logger.debug("structural edit ends active search")
            self._search.clear_search()

    def _remove_rows(self, start: int, end: int) -> list[FlatNode]:
        """Cut ``[start, end)`` from the list, un-expanding and un-loading cut rows."""
        removed = self._nodes[start:end]
        if not removed:
            return []
        self._nodes = self._nodes[:start] + self._nodes[end:]
        with self._tracker_sync():
            self.tracker.discard_many(removed)
        self._cancel_pending(removed)
        return removed

    def _cancel_pending(self, rows: Iterable[FlatNode]) -> None:
        for row in rows:
            if self._pending.pop(row, None) is not None:
                row.loading = False

    def _insert_row(self, at: int, child: TreeNode, level: int) -> FlatNode:
        row = self.make_node(child, level)
        updated = list(self._nodes)
        updated.insert(at, row)
        self._nodes = updated
        return row

    def _detach_domain(self, parent: FlatNode | None, child: TreeNode) -> None:
        if parent is not None:
            self.cache.remove_child(parent.data, child)
            return
        self.roots = [root for root in self.roots if root is not child]

    def _replace_root(self, old: TreeNode, new: TreeNode) -> None:
        self.roots = [new if root is old else root for root in self.roots]

    def _attach_moved(self, node: TreeNode, parent_path: str | None) -> FlatNode | None:
        """Append a moved node under ``parent_path`` and return its row if visible."""
        target = self.find_by_path(parent_path) if parent_path is not None else None
        if target is None:
            if parent_path is None or self._parent_path_is_top(parent_path):
                return self._append_root(node)
            return None
        if self.cached_children(target.data) is None:
            return None
        self.cache.insert_child(target.data, node)
        if target not in self.tracker:
            return None
        target_idx = self.index_of(target)
        row = self.make_node(node, target.level + 1)
        updated = list(self._nodes)
        updated.insert(block_end(self._nodes, target_idx), row)
        self._nodes = updated
        return row

    def _append_root(self, node: TreeNode) -> FlatNode:
        self.roots.append(node)
        row = self.make_node(node, 0)
        self._nodes = self._nodes + [row]
        return row

    def _parent_path_is_top(self, parent_path: str) -> bool:
        return parent_path.strip(self.settings.path_separator) == ""

    def _parent_path(self, path: str) -> str | None:
        head, separator, _tail = path.rstrip(self.settings.path_separator).rpartition(self.settings.path_separator)
        return head if separator else None

    def _last_segment(self, path: str) -> str:
        return path.rstrip(self.settings.path_separator).rpartition(self.settings.path_separator)[2]

    def _drop_duplicate_sibling(self, parent: FlatNode | None, child: TreeNode) -> list[FlatNode]:
        """Apply last-one-wins when an inserted child repeats a sibling key.

        Returns the removed rows; the caller publishes.
        """
        siblings = self.roots if parent is None else self.cached_children(parent.data)
        if not siblings:
            return []
        key = self._node_key(child)
        removed: list[FlatNode] = []
        for sibling in list(siblings):
            if sibling is child or self._node_key(sibling) != key:
                continue
            self._report(MALFORMED_DATA, f"duplicate sibling {key!r} replaced", sibling)
            idx = next((idx for idx, row in enumerate(self._nodes) if row.data is sibling), None)
            if idx is not None:
                removed.extend(self._remove_rows(idx, block_end(self._nodes, idx)))
            self._detach_domain(parent, sibling)
            self.cache.forget_subtree(sibling)
        return removed

    def _dedupe(self, parent: TreeNode | None, children: Iterable[TreeNode]) -> list[TreeNode]:
        """De-duplicate siblings by identity key; the last occurrence wins."""
        by_key: dict[object, TreeNode] = {}
        count = 0
        for child in children:
            count += 1
            key = self._node_key(child)
            by_key.pop(key, None)
            by_key[key] = child
        if len(by_key) != count:
            where = parent.label if parent is not None else "roots"
            self._report(MALFORMED_DATA, f"dropped {count - len(by_key)} duplicate children under {where!r}", parent)
        return list(by_key.values())

    def _report(
        self,
        kind: str,
        message: str,
        node: TreeNode | None = None,
        exc: BaseException | None = None,
    ) -> None:
        logger.warning(message)
        self.errors.emit(TreeError(kind=kind, message=message, node=node, exception=exc))

    # ------------------------------------------------------------------ #
    # Search façade
    # ------------------------------------------------------------------ #

    def search(self, query: str) -> int:
        """Filter rows by label; see ``TreeSearch.search``."""
        return self._search.search(query)

    def clear_search(self) -> bool:
        return self._search.clear_search()


__all__ = [
    "ChildrenFetcher",
    "TreeEngine",
    "default_node_key",
]
