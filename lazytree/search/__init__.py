"""Tree search: label filtering over a fully expanded projection."""

from __future__ import annotations

from .controller import SearchSnapshot, TreeSearch
from .matching import label_matches, normalize_query, relevance_key

__all__ = [
    "SearchSnapshot",
    "TreeSearch",
    "label_matches",
    "normalize_query",
    "relevance_key",
]
