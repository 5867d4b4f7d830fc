"""Bounded insertion of large node batches into the flat list."""

from __future__ import annotations

from collections.abc import Sequence

BATCH_INSERT_LIMIT = 10_000


def bounded_splice(
    target: list,
    index: int,
    items: Sequence,
    limit: int = BATCH_INSERT_LIMIT,
) -> None:
    """Insert ``items`` into ``target`` at ``index``.

    Batches larger than ``limit`` are inserted chunk by chunk from the tail
    backward, each chunk with one slice assignment at the same index, so the
    resulting order equals a single unchunked insert.
    """
    limit = max(1, limit)
    if len(items) <= limit:
        target[index:index] = items
        return
    end = len(items)
    while end > 0:
        start = max(0, end - limit)
        target[index:index] = items[start:end]
        end = start


__all__ = [
    "BATCH_INSERT_LIMIT",
    "bounded_splice",
]
