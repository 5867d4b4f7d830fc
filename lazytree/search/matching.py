"""Label matching and sibling relevance ordering for tree search."""

from __future__ import annotations

WORD_SEPARATORS = "/_- ."

RANK_EXACT = 0
RANK_PREFIX = 1
RANK_WORD_START = 2
RANK_SUBSTRING = 3
RANK_NO_MATCH = 4


def normalize_query(query: str) -> str:
    return query.strip().casefold()


def label_matches(label: str, needle: str) -> bool:
    """Case-insensitive substring test; ``needle`` must be pre-normalized."""
    return needle in label.casefold()


def relevance_key(label: str, needle: str) -> tuple[int, int, int]:
    """Sort key ranking closer matches first.

    Exact beats prefix, prefix beats a match at a word start, which beats any
    other substring; ties prefer an earlier match, then a shorter label.
    Non-matching labels share one key so a stable sort keeps their order.
    """
    folded = label.casefold()
    idx = folded.find(needle)
    if idx < 0:
        return (RANK_NO_MATCH, 0, 0)
    if folded == needle:
        rank = RANK_EXACT
    elif idx == 0:
        rank = RANK_PREFIX
    elif folded[idx - 1] in WORD_SEPARATORS:
        rank = RANK_WORD_START
    else:
        rank = RANK_SUBSTRING
    return (rank, idx, len(folded))


__all__ = [
    "WORD_SEPARATORS",
    "label_matches",
    "normalize_query",
    "relevance_key",
]
