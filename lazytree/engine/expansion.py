"""Expanded-node set with a change channel."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..events import EventChannel
from ..tree_model import FlatNode


@dataclass(frozen=True)
class ExpansionChange:
    """Nodes added to and removed from the expanded set by one call."""

    added: tuple[FlatNode, ...] = ()
    removed: tuple[FlatNode, ...] = ()


class ExpansionTracker:
    """Set of currently expanded flat nodes, keyed by identity.

    Calls that change nothing emit nothing.
    """

    def __init__(self) -> None:
        self._expanded: set[FlatNode] = set()
        self.changed: EventChannel[ExpansionChange] = EventChannel("expansion")

    def __contains__(self, node: object) -> bool:
        return node in self._expanded

    def __iter__(self) -> Iterator[FlatNode]:
        return iter(list(self._expanded))

    def __len__(self) -> int:
        return len(self._expanded)

    def is_expanded(self, node: FlatNode) -> bool:
        return node in self._expanded

    def _notify(self, added: Iterable[FlatNode], removed: Iterable[FlatNode], notify: bool) -> None:
        change = ExpansionChange(added=tuple(added), removed=tuple(removed))
        if notify and (change.added or change.removed):
            self.changed.emit(change)

    def expand(self, node: FlatNode, notify: bool = True) -> bool:
        if node in self._expanded:
            return False
        self._expanded.add(node)
        self._notify((node,), (), notify)
        return True

    def collapse(self, node: FlatNode, notify: bool = True) -> bool:
        if node not in self._expanded:
            return False
        self._expanded.discard(node)
        self._notify((), (node,), notify)
        return True

    def toggle(self, node: FlatNode, notify: bool = True) -> bool:
        """Flip membership and return the new expanded state."""
        if node in self._expanded:
            self.collapse(node, notify=notify)
            return False
        self.expand(node, notify=notify)
        return True

    def expand_many(self, nodes: Iterable[FlatNode], notify: bool = True) -> None:
        added = [node for node in dict.fromkeys(nodes) if node not in self._expanded]
        self._expanded.update(added)
        self._notify(added, (), notify)

    def discard_many(self, nodes: Iterable[FlatNode], notify: bool = True) -> None:
        removed = [node for node in dict.fromkeys(nodes) if node in self._expanded]
        self._expanded.difference_update(removed)
        self._notify((), removed, notify)

    def snapshot(self) -> frozenset[FlatNode]:
        return frozenset(self._expanded)

    def restore(self, snapshot: Iterable[FlatNode], notify: bool = True) -> None:
        """Replace the expanded set with ``snapshot``."""
        target = set(snapshot)
        added = target - self._expanded
        removed = self._expanded - target
        self._expanded = target
        self._notify(added, removed, notify)

    def clear(self, notify: bool = True) -> None:
        self.restore((), notify=notify)


__all__ = [
    "ExpansionChange",
    "ExpansionTracker",
]
