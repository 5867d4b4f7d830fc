"""Tree node model, flattening, and flat-list navigation.

Defines ``TreeNode``/``FlatNode`` and the depth-one ``transform`` used by
the engine whenever a node's children become visible.
"""

from __future__ import annotations

from .flattening import FlatNodeFactory, default_flat_node, node_icon_resolver, transform
from .navigation import block_end, child_indices, index_of, parent_index, root_indices
from .types import FlatNode, IconResolver, TreeNode

__all__ = [
    "FlatNode",
    "FlatNodeFactory",
    "IconResolver",
    "TreeNode",
    "block_end",
    "child_indices",
    "default_flat_node",
    "index_of",
    "node_icon_resolver",
    "parent_index",
    "root_indices",
    "transform",
]
