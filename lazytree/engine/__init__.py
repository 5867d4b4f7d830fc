"""Tree engine: flat list ownership, lazy expansion, and structural edits."""

from __future__ import annotations

from .cache import ChildrenCache
from .engine import ChildrenFetcher, TreeEngine, default_node_key
from .errors import FETCH_FAILURE, MALFORMED_DATA, NodeReplaced, ToggleEvent, TreeError
from .expansion import ExpansionChange, ExpansionTracker
from .splice import BATCH_INSERT_LIMIT, bounded_splice

__all__ = [
    "BATCH_INSERT_LIMIT",
    "ChildrenCache",
    "ChildrenFetcher",
    "ExpansionChange",
    "ExpansionTracker",
    "FETCH_FAILURE",
    "MALFORMED_DATA",
    "NodeReplaced",
    "ToggleEvent",
    "TreeEngine",
    "TreeError",
    "bounded_splice",
    "default_node_key",
]
