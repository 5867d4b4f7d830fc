"""Children sources: filesystem listing and a background worker wrapper."""

from __future__ import annotations

from .background import BackgroundFetcher
from .fs import FileInfo, FileSystemSource, list_directory_nodes, path_node, root_node

__all__ = [
    "BackgroundFetcher",
    "FileInfo",
    "FileSystemSource",
    "list_directory_nodes",
    "path_node",
    "root_node",
]
