"""Error and notification records forwarded to the external error channel."""

from __future__ import annotations

from dataclasses import dataclass

from ..tree_model import FlatNode, TreeNode

FETCH_FAILURE = "fetch"
MALFORMED_DATA = "malformed"


@dataclass(frozen=True)
class TreeError:
    """Recoverable tree problem surfaced for user visibility."""

    kind: str
    message: str
    node: TreeNode | None = None
    exception: BaseException | None = None


@dataclass(frozen=True)
class ToggleEvent:
    """Emitted after an expand or collapse completes."""

    node: FlatNode
    expanded: bool


@dataclass(frozen=True)
class NodeReplaced:
    """A flat row replaced by a renamed/moved row."""

    old: FlatNode
    new: FlatNode


__all__ = [
    "FETCH_FAILURE",
    "MALFORMED_DATA",
    "NodeReplaced",
    "ToggleEvent",
    "TreeError",
]
