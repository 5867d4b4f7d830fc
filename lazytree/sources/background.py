"""Background worker turning a blocking children source into a Future source."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from queue import Queue

from ..tree_model import TreeNode

_STOP = object()


class BackgroundFetcher:
    """Single worker thread running fetches in request order.

    Calling the fetcher returns a ``Future`` immediately; the engine applies
    its result on its own thread through ``TreeEngine.drain_fetches``.
    """

    def __init__(
        self,
        fetch: Callable[[TreeNode], Sequence[TreeNode]],
        name: str = "lazytree-fetch",
    ) -> None:
        self._fetch = fetch
        self._name = name
        self._lock = threading.Lock()
        self._requests: Queue = Queue()
        self._worker: threading.Thread | None = None
        self._closed = False

    def _run(self) -> None:
        while True:
            item = self._requests.get()
            if item is _STOP:
                return
            node, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                children = self._fetch(node)
            except Exception as exc:
                future.set_exception(exc)
                continue
            future.set_result(children)

    def __call__(self, node: TreeNode) -> Future:
        future: Future = Future()
        with self._lock:
            if self._closed:
                future.set_exception(RuntimeError("fetcher is shut down"))
                return future
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._worker.start()
            self._requests.put((node, future))
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting requests; queued requests still run before exit."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker
            self._requests.put(_STOP)
        if wait and worker is not None:
            worker.join()


__all__ = ["BackgroundFetcher"]
