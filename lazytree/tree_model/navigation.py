"""Flat-list index navigation helpers.

Every helper relies only on row levels: a node's descendants are the rows
right after it whose level is strictly greater, and its parent is the
nearest preceding row with a strictly lower level.
"""

from __future__ import annotations

from collections.abc import Sequence

from .types import FlatNode


def index_of(nodes: Sequence[FlatNode], node: FlatNode) -> int | None:
    """Return index of ``node`` by identity, or ``None`` when absent."""
    for idx, candidate in enumerate(nodes):
        if candidate is node:
            return idx
    return None


def block_end(nodes: Sequence[FlatNode], index: int) -> int:
    """Return first index after the contiguous descendant block of ``index``."""
    level = nodes[index].level
    idx = index + 1
    while idx < len(nodes) and nodes[idx].level > level:
        idx += 1
    return idx


def parent_index(nodes: Sequence[FlatNode], index: int) -> int | None:
    """Scan backward for the nearest row with a strictly lower level."""
    level = nodes[index].level
    if level == 0:
        return None
    idx = index - 1
    while idx >= 0:
        if nodes[idx].level < level:
            return idx
        idx -= 1
    return None


def child_indices(nodes: Sequence[FlatNode], index: int) -> list[int]:
    """Return indices of the direct children of ``index`` currently in the list."""
    level = nodes[index].level
    out: list[int] = []
    idx = index + 1
    while idx < len(nodes) and nodes[idx].level > level:
        if nodes[idx].level == level + 1:
            out.append(idx)
        idx += 1
    return out


def root_indices(nodes: Sequence[FlatNode]) -> list[int]:
    """Return indices of level-0 rows."""
    return [idx for idx, node in enumerate(nodes) if node.level == 0]


__all__ = [
    "block_end",
    "child_indices",
    "index_of",
    "parent_index",
    "root_indices",
]
