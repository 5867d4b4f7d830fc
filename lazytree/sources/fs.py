"""Filesystem-backed children source.

Directory rows are containers; files are leaves. Children are listed with
``os.scandir`` (directories first, then case-folded names) and carry size
and mtime metadata as their payload.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ..tree_model import TreeNode

FOLDER_ICON = "folder-icon"
FOLDER_OPEN_ICON = "folder-open-icon"
FILE_ICON = "file-icon"


@dataclass(frozen=True)
class FileInfo:
    """Stat metadata observed while listing a directory."""

    is_dir: bool
    file_size: int | None = None
    mtime_ns: int | None = None


def safe_mtime_ns(path: Path) -> int | None:
    """Return ``st_mtime_ns`` for ``path`` or ``None`` on stat failure."""
    try:
        return int(path.stat().st_mtime_ns)
    except OSError:
        return None


def path_node(path: Path, is_dir: bool, file_size: int | None = None, mtime_ns: int | None = None) -> TreeNode:
    """Build the tree node for one filesystem path."""
    return TreeNode(
        label=path.name or str(path),
        path=path.as_posix(),
        leaf=not is_dir,
        data=FileInfo(is_dir=is_dir, file_size=file_size, mtime_ns=mtime_ns),
        type="folder" if is_dir else "file",
        icon=None if is_dir else FILE_ICON,
        expanded_icon=FOLDER_OPEN_ICON if is_dir else None,
        collapsed_icon=FOLDER_ICON if is_dir else None,
    )


def root_node(directory: Path) -> TreeNode:
    directory = directory.resolve()
    return path_node(directory, True, mtime_ns=safe_mtime_ns(directory))


def list_directory_nodes(directory: Path, show_hidden: bool) -> list[TreeNode]:
    """List visible children of ``directory`` as tree nodes.

    Raises ``OSError`` when the directory cannot be scanned so callers can
    report the failure.
    """
    children: list[TreeNode] = []
    with os.scandir(directory) as entries:
        for child in entries:
            name = child.name
            if not show_hidden and name.startswith("."):
                continue
            try:
                is_dir = child.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False

            file_size: int | None = None
            mtime_ns: int | None = None
            try:
                stat = child.stat(follow_symlinks=False)
                mtime_ns = int(stat.st_mtime_ns)
                if not is_dir:
                    file_size = int(stat.st_size)
            except OSError:
                pass
            children.append(path_node(Path(child.path), is_dir, file_size, mtime_ns))

    children.sort(key=lambda item: (item.leaf, item.label.casefold()))
    return children


class FileSystemSource:
    """Children fetcher listing the directory named by a node's path."""

    def __init__(self, show_hidden: bool = False) -> None:
        self.show_hidden = show_hidden

    def __call__(self, node: TreeNode) -> list[TreeNode]:
        if node.path is None:
            raise ValueError(f"node {node.label!r} has no path")
        return list_directory_nodes(Path(node.path), self.show_hidden)


__all__ = [
    "FileInfo",
    "FileSystemSource",
    "list_directory_nodes",
    "path_node",
    "root_node",
    "safe_mtime_ns",
]
