"""Tests for the background worker wrapper around blocking sources."""

from __future__ import annotations

import threading
import unittest

from lazytree.engine import FETCH_FAILURE, TreeEngine, TreeError
from lazytree.sources import BackgroundFetcher
from lazytree.tree_model import TreeNode


class BackgroundFetcherTests(unittest.TestCase):
    def test_fetch_runs_on_worker_thread_and_resolves_future(self) -> None:
        threads: list[str] = []

        def fetch(node: TreeNode) -> list[TreeNode]:
            threads.append(threading.current_thread().name)
            return [TreeNode(f"{node.label}-child", leaf=True)]

        fetcher = BackgroundFetcher(fetch, name="test-fetch")
        try:
            future = fetcher(TreeNode("root"))
            children = future.result(timeout=2)
        finally:
            fetcher.shutdown()

        self.assertEqual([child.label for child in children], ["root-child"])
        self.assertEqual(threads, ["test-fetch"])

    def test_exceptions_are_delivered_through_future(self) -> None:
        def fetch(_node: TreeNode) -> list[TreeNode]:
            raise PermissionError("denied")

        fetcher = BackgroundFetcher(fetch)
        try:
            future = fetcher(TreeNode("root"))
            with self.assertRaises(PermissionError):
                future.result(timeout=2)
        finally:
            fetcher.shutdown()

    def test_calls_after_shutdown_fail_immediately(self) -> None:
        fetcher = BackgroundFetcher(lambda _node: [])
        fetcher.shutdown()

        future = fetcher(TreeNode("late"))

        self.assertTrue(future.done())
        self.assertIsInstance(future.exception(), RuntimeError)

    def test_engine_applies_background_results_on_drain(self) -> None:
        release = threading.Event()

        def fetch(_node: TreeNode) -> list[TreeNode]:
            release.wait(timeout=2)
            return [TreeNode("slow", leaf=True)]

        fetcher = BackgroundFetcher(fetch)
        try:
            engine = TreeEngine(fetch_children=fetcher)
            engine.set_roots([TreeNode("root")])
            engine.toggle(engine.nodes[0])
            self.assertTrue(engine.nodes[0].loading)

            release.set()
            self.assertEqual(engine.drain_fetches(timeout=2), 1)
        finally:
            fetcher.shutdown()

        self.assertEqual([row.label for row in engine.nodes], ["root", "slow"])
        self.assertFalse(engine.nodes[0].loading)

    def test_engine_reports_background_failure(self) -> None:
        release = threading.Event()

        def fetch(_node: TreeNode) -> list[TreeNode]:
            release.wait(timeout=2)
            raise OSError("unreachable")

        fetcher = BackgroundFetcher(fetch)
        try:
            engine = TreeEngine(fetch_children=fetcher)
            engine.set_roots([TreeNode("root")])
            errors: list[TreeError] = []
            engine.errors.subscribe(errors.append)
            engine.toggle(engine.nodes[0])
            release.set()
            with self.assertLogs("lazytree.engine.engine", level="WARNING"):
                engine.drain_fetches(timeout=2)
        finally:
            fetcher.shutdown()

        self.assertEqual([error.kind for error in errors], [FETCH_FAILURE])


if __name__ == "__main__":
    unittest.main()
