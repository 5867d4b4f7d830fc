"""Tests for engine expand/collapse splicing and change notifications."""

from __future__ import annotations

import unittest

from lazytree.engine import ExpansionTracker, ToggleEvent, TreeEngine
from lazytree.tree_model import FlatNode, TreeNode


class RecordingFetcher:
    """Synchronous children source keyed by label."""

    def __init__(self, tree: dict[str, list[TreeNode]]) -> None:
        self.tree = tree
        self.calls: list[str] = []

    def __call__(self, node: TreeNode) -> list[TreeNode]:
        self.calls.append(node.label)
        return list(self.tree.get(node.label, []))


def _labels(rows: list[FlatNode]) -> list[str]:
    return [row.label for row in rows]


class EngineExpansionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.a1 = TreeNode("a1", leaf=True)
        self.a2 = TreeNode("a2")
        self.x = TreeNode("x", leaf=True)
        self.fetcher = RecordingFetcher({"a": [self.a1, self.a2], "a2": [self.x]})
        self.engine = TreeEngine(fetch_children=self.fetcher)
        self.engine.set_roots([TreeNode("a"), TreeNode("b", leaf=True)])

    def _row(self, label: str) -> FlatNode:
        return next(row for row in self.engine.nodes if row.label == label)

    def test_toggle_fetches_and_splices_children_after_parent(self) -> None:
        self.engine.toggle(self._row("a"))

        self.assertEqual(_labels(self.engine.nodes), ["a", "a1", "a2", "b"])
        self.assertEqual([row.level for row in self.engine.nodes], [0, 1, 1, 0])
        self.assertTrue(self.engine.is_expanded(self._row("a")))
        self.assertEqual(self.fetcher.calls, ["a"])

    def test_expand_then_collapse_restores_identical_rows(self) -> None:
        before = list(self.engine.nodes)
        root = self._row("a")

        self.engine.toggle(root)
        self.engine.toggle(self._row("a2"))
        self.engine.toggle(root)

        self.assertEqual(len(self.engine.nodes), len(before))
        for got, want in zip(self.engine.nodes, before):
            self.assertIs(got, want)
        self.assertEqual(len(self.engine.tracker), 0)

    def test_reexpanding_uses_cached_children_without_fetching(self) -> None:
        root = self._row("a")

        self.engine.toggle(root)
        self.engine.toggle(root)
        self.engine.toggle(root)

        self.assertEqual(self.fetcher.calls, ["a"])
        self.assertEqual(_labels(self.engine.nodes), ["a", "a1", "a2", "b"])

    def test_collapse_drops_nested_expansion_state(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        nested = self._row("a2")
        self.engine.toggle(nested)

        self.engine.toggle(root)
        self.engine.toggle(root)

        self.assertNotIn(nested, self.engine.tracker)
        self.assertEqual(_labels(self.engine.nodes), ["a", "a1", "a2", "b"])
        self.assertFalse(self.engine.is_expanded(self._row("a2")))

    def test_leaf_rows_do_not_expand(self) -> None:
        self.engine.toggle(self._row("b"))

        self.assertEqual(self.fetcher.calls, [])
        self.assertEqual(_labels(self.engine.nodes), ["a", "b"])

    def test_installed_list_is_never_mutated_in_place(self) -> None:
        published: list[list[FlatNode]] = []
        self.engine.connect(published.append)
        snapshot = self.engine.nodes
        copy = list(snapshot)

        self.engine.toggle(self._row("a"))

        self.assertEqual(snapshot, copy)
        self.assertIsNot(self.engine.nodes, snapshot)

    def test_connect_delivers_current_rows_then_one_update_per_toggle(self) -> None:
        published: list[list[str]] = []
        toggles: list[ToggleEvent] = []
        self.engine.connect(lambda rows: published.append(_labels(rows)))
        self.engine.node_toggled.subscribe(toggles.append)
        root = self._row("a")

        self.engine.toggle(root)
        self.engine.toggle(root)

        self.assertEqual(published, [["a", "b"], ["a", "a1", "a2", "b"], ["a", "b"]])
        self.assertEqual(toggles, [ToggleEvent(root, True), ToggleEvent(root, False)])

    def test_get_parent_returns_nearest_lower_level_row(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        self.engine.toggle(self._row("a2"))

        self.assertIs(self.engine.get_parent(self._row("x")), self._row("a2"))
        self.assertIs(self.engine.get_parent(self._row("a1")), root)
        self.assertIs(self.engine.get_parent(root), root)

    def test_get_parent_of_detached_row_raises_lookup_error(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        child = self._row("a1")
        self.engine.toggle(root)

        with self.assertRaises(LookupError):
            self.engine.get_parent(child)

    def test_expand_all_uses_only_available_children(self) -> None:
        shipped = TreeNode("shipped", children=[TreeNode("inner", children=[TreeNode("deep", leaf=True)])])
        self.engine.set_roots([shipped, TreeNode("lazy")])

        self.engine.expand_all()

        self.assertEqual(_labels(self.engine.nodes), ["shipped", "inner", "deep", "lazy"])
        self.assertEqual([row.level for row in self.engine.nodes], [0, 1, 2, 0])
        self.assertEqual(self.fetcher.calls, [])
        self.assertFalse(self.engine.is_expanded(self._row("lazy")))

    def test_expand_all_keeps_existing_rows(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        a1 = self._row("a1")

        self.engine.expand_all()

        self.assertIs(self._row("a"), root)
        self.assertIs(self._row("a1"), a1)

    def test_collapse_all_keeps_only_level_zero_rows(self) -> None:
        self.engine.toggle(self._row("a"))
        self.engine.toggle(self._row("a2"))

        self.engine.collapse_all()

        self.assertEqual(_labels(self.engine.nodes), ["a", "b"])
        self.assertEqual(len(self.engine.tracker), 0)

    def test_refresh_node_refetches_expanded_children(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        self.fetcher.tree["a"] = [TreeNode("fresh", leaf=True)]

        self.engine.refresh_node(root)

        self.assertEqual(_labels(self.engine.nodes), ["a", "fresh", "b"])
        self.assertEqual(self.fetcher.calls, ["a", "a"])
        self.assertTrue(self.engine.is_expanded(root))

    def test_refresh_of_collapsed_node_only_forgets_cache(self) -> None:
        root = self._row("a")
        self.engine.toggle(root)
        self.engine.toggle(root)
        self.fetcher.tree["a"] = [TreeNode("fresh", leaf=True)]

        self.engine.refresh_node(root)
        self.assertEqual(self.fetcher.calls, ["a"])
        self.engine.toggle(root)

        self.assertEqual(_labels(self.engine.nodes), ["a", "fresh", "b"])

    def test_domain_children_are_never_written(self) -> None:
        shipped = TreeNode("shipped", children=[TreeNode("one", leaf=True)])
        self.engine.set_roots([shipped])
        self.engine.toggle(self.engine.nodes[0])

        self.engine.insert_node(self.engine.nodes[0], TreeNode("two", leaf=True))

        self.assertEqual([child.label for child in shipped.children], ["one"])
        self.assertEqual(_labels(self.engine.nodes), ["shipped", "one", "two"])


class ExternalTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.fetcher = RecordingFetcher({"a": [TreeNode("a1", leaf=True)]})
        self.tracker = ExpansionTracker()
        self.engine = TreeEngine(fetch_children=self.fetcher, tracker=self.tracker)
        self.engine.set_roots([TreeNode("a")])
        self.published: list[list[str]] = []
        self.engine.connect(lambda rows: self.published.append(_labels(rows)))

    def test_external_expand_drives_engine_expansion(self) -> None:
        root = self.engine.nodes[0]

        self.tracker.expand(root)

        self.assertEqual(_labels(self.engine.nodes), ["a", "a1"])
        self.assertIn(root, self.tracker)

    def test_external_collapse_removes_descendant_rows(self) -> None:
        root = self.engine.nodes[0]
        self.engine.toggle(root)

        self.tracker.collapse(root)

        self.assertEqual(_labels(self.engine.nodes), ["a"])
        self.assertEqual(self.published[-1], ["a"])

    def test_engine_edits_to_tracker_are_not_reapplied(self) -> None:
        root = self.engine.nodes[0]

        self.engine.toggle(root)

        self.assertEqual(self.fetcher.calls, ["a"])
        self.assertEqual(self.published, [["a"], ["a", "a1"]])

    def test_disconnect_stops_following_tracker(self) -> None:
        root = self.engine.nodes[0]
        self.engine.disconnect()

        self.tracker.expand(root)

        self.assertEqual(_labels(self.engine.nodes), ["a"])


if __name__ == "__main__":
    unittest.main()
