"""Tree node datatypes shared by the flattener, engine, and search."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

IconResolver = Callable[[bool], "str | None"]


@dataclass(eq=False)
class TreeNode:
    """Domain node: label, lazily fetched children, and opaque payload.

    ``children is None`` means "not fetched yet"; an empty list means a leaf
    proven by a fetch. Nodes compare by identity.
    """

    label: str
    children: list["TreeNode"] | None = None
    path: str | None = None
    leaf: bool = False
    data: object = None
    type: str | None = None
    icon: str | None = None
    expanded_icon: str | None = None
    collapsed_icon: str | None = None

    @property
    def expandable(self) -> bool:
        return not self.leaf


def _no_icon(_expanded: bool) -> str | None:
    return None


@dataclass(eq=False)
class FlatNode:
    """One row of the flat list, projecting a ``TreeNode`` at ``level``."""

    label: str
    level: int
    expandable: bool
    data: TreeNode
    loading: bool = False
    visible: bool = True
    icon: IconResolver = field(default=_no_icon, repr=False)

    def __repr__(self) -> str:
        return f"FlatNode({self.label!r}, level={self.level})"


__all__ = [
    "FlatNode",
    "IconResolver",
    "TreeNode",
]
