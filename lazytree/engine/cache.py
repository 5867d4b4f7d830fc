"""Fetched-children cache keyed by domain node identity.

The engine never writes ``TreeNode.children``. Children a domain node ships
with (``children is not None``) count as already fetched and are copied in
on first access; later edits only touch the cached copy.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..tree_model import TreeNode


class ChildrenCache:
    """Map from domain node identity to its fetched children."""

    def __init__(self) -> None:
        # Keep the node alive alongside its entry so ``id()`` is never reused.
        self._entries: dict[int, tuple[TreeNode, list[TreeNode]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, node: object) -> bool:
        return id(node) in self._entries

    def get(self, node: TreeNode) -> list[TreeNode] | None:
        """Return cached children (engine-owned list), seeding from the domain node."""
        entry = self._entries.get(id(node))
        if entry is not None:
            return entry[1]
        if node.children is None:
            return None
        children = list(node.children)
        self._entries[id(node)] = (node, children)
        return children

    def put(self, node: TreeNode, children: Iterable[TreeNode]) -> list[TreeNode]:
        stored = list(children)
        self._entries[id(node)] = (node, stored)
        return stored

    def forget(self, node: TreeNode) -> None:
        self._entries.pop(id(node), None)

    def forget_subtree(self, node: TreeNode) -> None:
        """Drop cache entries for ``node`` and every cached descendant."""
        stack = [node]
        while stack:
            current = stack.pop()
            entry = self._entries.pop(id(current), None)
            if entry is not None:
                stack.extend(entry[1])

    def remove_child(self, parent: TreeNode, child: TreeNode) -> bool:
        children = self.get(parent)
        if children is None:
            return False
        for idx, candidate in enumerate(children):
            if candidate is child:
                del children[idx]
                return True
        return False

    def replace_child(self, parent: TreeNode, old: TreeNode, new: TreeNode) -> bool:
        children = self.get(parent)
        if children is None:
            return False
        for idx, candidate in enumerate(children):
            if candidate is old:
                children[idx] = new
                return True
        return False

    def insert_child(self, parent: TreeNode, child: TreeNode, position: int | None = None) -> int | None:
        """Insert into cached children; returns the position or ``None`` when not cached."""
        children = self.get(parent)
        if children is None:
            return None
        if position is None or position > len(children):
            position = len(children)
        position = max(0, position)
        children.insert(position, child)
        return position

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["ChildrenCache"]
