"""Explicitly owned coalescing queue for per-row layout work.

Rendering layers create one scheduler per view and hand it to the rows they
build. Many rows created at once each ``schedule`` their measurement; the
view runs them together with one ``flush`` call. Requests are keyed, and the
latest request per key wins.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)


class RowBatchScheduler:
    """Latest-request-wins batch of deferred row jobs."""

    def __init__(self) -> None:
        self._pending: OrderedDict[Hashable, Callable[[], None]] = OrderedDict()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, key: Hashable, job: Callable[[], None]) -> None:
        """Queue ``job`` for ``key``, replacing any job not yet flushed."""
        self._pending.pop(key, None)
        self._pending[key] = job

    def cancel(self, key: Hashable) -> bool:
        return self._pending.pop(key, None) is not None

    def flush(self) -> int:
        """Run queued jobs in scheduling order and return how many ran.

        Jobs scheduled while flushing wait for the next flush. A failing job is
        logged and skipped.
        """
        batch = self._pending
        self._pending = OrderedDict()
        ran = 0
        for key, job in batch.items():
            try:
                job()
            except Exception:
                logger.exception("row batch job %r failed", key)
                continue
            ran += 1
        return ran


__all__ = ["RowBatchScheduler"]
