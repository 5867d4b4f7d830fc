"""Public package surface for lazytree.

A lazy, flattened tree data source: a hierarchical model kept as one flat
list that expands on demand, filters in place, and restores exactly.
Exports ``main`` for programmatic CLI invocation.
"""

from __future__ import annotations

from .engine import ExpansionTracker, TreeEngine, TreeError
from .events import EventChannel, Subscription
from .selection import PickModifiers, TreeSelection, select
from .tree_model import FlatNode, TreeNode, transform


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = [
    "EventChannel",
    "ExpansionTracker",
    "FlatNode",
    "PickModifiers",
    "Subscription",
    "TreeEngine",
    "TreeError",
    "TreeNode",
    "TreeSelection",
    "main",
    "select",
    "transform",
]
