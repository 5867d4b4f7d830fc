"""Pointer/keyboard selection over the rendered flat list.

``select`` is the pure transition: current selection plus one pick gives the
next selection. ``TreeSelection`` keeps that state, publishes changes, and
follows engine edits so replaced or removed rows do not linger.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .events import EventChannel, Subscription
from .tree_model import FlatNode

if TYPE_CHECKING:
    from .engine import NodeReplaced, TreeEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickModifiers:
    """Modifier state accompanying one pick."""

    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    drag: bool = False

    @property
    def toggles(self) -> bool:
        return self.ctrl or self.meta


NO_MODIFIERS = PickModifiers()


def same_entry(a: FlatNode, b: FlatNode) -> bool:
    """De-duplication equality: same label and same domain node."""
    return a.label == b.label and a.data is b.data


def same_pick(a: FlatNode, b: FlatNode) -> bool:
    """Toggle equality: same domain node, label, and level."""
    return a.data is b.data and a.label == b.label and a.level == b.level


def _position(nodes: Sequence[FlatNode], node: FlatNode) -> int | None:
    for idx, candidate in enumerate(nodes):
        if same_entry(candidate, node):
            return idx
    return None


def select(
    selection: Sequence[FlatNode],
    node: FlatNode,
    modifiers: PickModifiers = NO_MODIFIERS,
    rendered: Sequence[FlatNode] = (),
) -> list[FlatNode]:
    """Return the selection after picking ``node``.

    - drag: keep the selection, appending ``node`` when it is not selected yet
    - shift: rendered-order range from the last selected node to ``node``;
      re-picking that last node keeps the selection
    - ctrl/meta: toggle ``node``'s membership
    - none: exactly ``[node]``
    """
    current = list(selection)
    if modifiers.drag:
        if _position(current, node) is None:
            current.append(node)
        return current

    if modifiers.shift:
        if not current:
            return [node]
        anchor = current[-1]
        if same_entry(anchor, node):
            return current
        anchor_idx = _position(rendered, anchor)
        node_idx = _position(rendered, node)
        if anchor_idx is None or node_idx is None:
            return [node]
        low, high = sorted((anchor_idx, node_idx))
        return list(rendered[low:high + 1])

    if modifiers.toggles:
        kept = [entry for entry in current if not same_pick(entry, node)]
        if len(kept) != len(current):
            return kept
        current.append(node)
        return current

    return [node]


def enforce_single_path(
    selection: Sequence[FlatNode],
    rendered: Sequence[FlatNode],
    priority: FlatNode,
) -> list[FlatNode]:
    """Drop selected rows that share a root path with another selected row.

    ``priority`` always survives; among other related rows the descendant wins
    over its ancestor.
    """
    positions = {id(entry): _position(rendered, entry) for entry in selection}

    def ancestors(idx: int) -> set[int]:
        out: set[int] = set()
        level = rendered[idx].level
        scan = idx - 1
        while scan >= 0 and level > 0:
            if rendered[scan].level < level:
                out.add(scan)
                level = rendered[scan].level
            scan -= 1
        return out

    priority_idx = _position(rendered, priority)
    priority_line = set()
    if priority_idx is not None:
        priority_line = ancestors(priority_idx)

    selected_idx = {idx for idx in positions.values() if idx is not None}
    kept: list[FlatNode] = []
    for entry in selection:
        idx = positions[id(entry)]
        if same_entry(entry, priority) or idx is None:
            kept.append(entry)
            continue
        if priority_idx is not None and (idx in priority_line or priority_idx in ancestors(idx)):
            continue
        has_selected_descendant = any(idx in ancestors(other) for other in selected_idx if other != idx)
        if has_selected_descendant:
            continue
        kept.append(entry)
    return kept


class TreeSelection:
    """Selection state plus ``selection_changed`` notifications."""

    def __init__(self, *, single_path_to_root: bool = False) -> None:
        self.selected: list[FlatNode] = []
        self.single_path_to_root = single_path_to_root
        self.selection_changed: EventChannel[list[FlatNode]] = EventChannel("selection")
        self._subscriptions: list[Subscription] = []
        self._rendered: Sequence[FlatNode] = ()

    def bind(self, engine: "TreeEngine") -> None:
        """Follow ``engine``'s rendered list and row replacement/removal."""
        self.unbind()
        self._subscriptions = [
            engine.connect(self._on_rendered),
            engine.node_replaced.subscribe(self._on_replaced),
            engine.node_removed.subscribe(self._on_removed),
        ]

    def unbind(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def is_selected(self, node: FlatNode) -> bool:
        return _position(self.selected, node) is not None

    def pick(
        self,
        node: FlatNode,
        modifiers: PickModifiers = NO_MODIFIERS,
        rendered: Sequence[FlatNode] | None = None,
    ) -> list[FlatNode]:
        """Apply one pick against ``rendered`` (defaults to the bound list)."""
        rows = self._rendered if rendered is None else rendered
        updated = select(self.selected, node, modifiers, rows)
        if self.single_path_to_root and len(updated) > 1:
            updated = enforce_single_path(updated, rows, node)
        self._set(updated)
        return list(self.selected)

    def clear(self) -> None:
        self._set([])

    def _set(self, updated: list[FlatNode]) -> None:
        if len(updated) == len(self.selected) and all(a is b for a, b in zip(updated, self.selected)):
            return
        self.selected = updated
        self.selection_changed.emit(list(updated))

    def _on_rendered(self, rows: list[FlatNode]) -> None:
        self._rendered = rows

    def _on_replaced(self, event: "NodeReplaced") -> None:
        if not any(entry is event.old for entry in self.selected):
            return
        logger.debug("selection follows %r to %r", event.old.label, event.new.label)
        self._set([event.new if entry is event.old else entry for entry in self.selected])

    def _on_removed(self, removed: tuple[FlatNode, ...]) -> None:
        gone = {id(row) for row in removed}
        kept = [entry for entry in self.selected if id(entry) not in gone]
        if len(kept) != len(self.selected):
            self._set(kept)


__all__ = [
    "NO_MODIFIERS",
    "PickModifiers",
    "TreeSelection",
    "enforce_single_path",
    "same_entry",
    "same_pick",
    "select",
]
