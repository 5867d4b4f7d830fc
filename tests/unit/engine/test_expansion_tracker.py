"""Tests for the expanded-node set and its change notifications."""

from __future__ import annotations

import unittest

from lazytree.engine import ExpansionChange, ExpansionTracker
from lazytree.tree_model import TreeNode, default_flat_node


def _row(label: str):
    return default_flat_node(TreeNode(label), 0)


class ExpansionTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tracker = ExpansionTracker()
        self.changes: list[ExpansionChange] = []
        self.tracker.changed.subscribe(self.changes.append)

    def test_expand_and_collapse_emit_only_on_real_change(self) -> None:
        row = _row("a")

        self.assertTrue(self.tracker.expand(row))
        self.assertFalse(self.tracker.expand(row))
        self.assertTrue(self.tracker.collapse(row))
        self.assertFalse(self.tracker.collapse(row))

        self.assertEqual(
            self.changes,
            [ExpansionChange(added=(row,)), ExpansionChange(removed=(row,))],
        )

    def test_toggle_returns_new_state(self) -> None:
        row = _row("a")

        self.assertTrue(self.tracker.toggle(row))
        self.assertTrue(self.tracker.is_expanded(row))
        self.assertFalse(self.tracker.toggle(row))
        self.assertNotIn(row, self.tracker)

    def test_notify_false_changes_membership_silently(self) -> None:
        row = _row("a")

        self.tracker.expand(row, notify=False)

        self.assertIn(row, self.tracker)
        self.assertEqual(self.changes, [])

    def test_bulk_operations_report_only_changed_members(self) -> None:
        a, b, c = _row("a"), _row("b"), _row("c")
        self.tracker.expand(a, notify=False)

        self.tracker.expand_many([a, b, b])
        self.tracker.discard_many([b, c])

        self.assertEqual(self.changes, [ExpansionChange(added=(b,)), ExpansionChange(removed=(b,))])
        self.assertEqual(len(self.tracker), 1)

    def test_snapshot_and_restore_round_trip(self) -> None:
        a, b = _row("a"), _row("b")
        self.tracker.expand(a)
        snapshot = self.tracker.snapshot()
        self.tracker.collapse(a)
        self.tracker.expand(b)
        self.changes.clear()

        self.tracker.restore(snapshot)

        self.assertEqual(set(self.tracker), {a})
        self.assertEqual(len(self.changes), 1)
        self.assertEqual(self.changes[0].added, (a,))
        self.assertEqual(self.changes[0].removed, (b,))

    def test_membership_is_by_identity(self) -> None:
        row = _row("a")
        twin = default_flat_node(row.data, 0)
        self.tracker.expand(row)

        self.assertNotIn(twin, self.tracker)


if __name__ == "__main__":
    unittest.main()
