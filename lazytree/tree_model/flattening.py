"""Depth-one flattening of domain children into flat-list rows."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .types import FlatNode, IconResolver, TreeNode

FlatNodeFactory = Callable[[TreeNode, int], FlatNode]


def node_icon_resolver(node: TreeNode) -> IconResolver:
    """Return resolver picking expanded/collapsed icons, falling back to ``icon``."""

    def resolve(expanded: bool) -> str | None:
        specific = node.expanded_icon if expanded else node.collapsed_icon
        return specific if specific is not None else node.icon

    return resolve


def default_flat_node(node: TreeNode, level: int) -> FlatNode:
    """Project one domain node; ``expandable`` comes from the ``leaf`` flag only."""
    return FlatNode(
        label=node.label,
        level=level,
        expandable=node.expandable,
        data=node,
        icon=node_icon_resolver(node),
    )


def transform(
    children: Iterable[TreeNode],
    level: int,
    make_node: FlatNodeFactory = default_flat_node,
) -> list[FlatNode]:
    """Return one flat node per child at ``level``, preserving input order."""
    return [make_node(child, level) for child in children]


__all__ = [
    "FlatNodeFactory",
    "default_flat_node",
    "node_icon_resolver",
    "transform",
]
