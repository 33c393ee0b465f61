"""
services/search_service.py – Name normalisation and in-memory catalogue search.

Two kinds of matching are offered:

* exact: both sides reduced with :func:`comparable_name` and compared;
* fuzzy: every whitespace-separated token of the query must appear somewhere
  in the candidate name, case-insensitively (order and word boundaries are
  not considered).
"""

import re
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional

if TYPE_CHECKING:
    from dlc_catalog.models.app_entry import AppEntry

# ── Configuration ────────────────────────────────────────────────────────────

# Everything that is not an ASCII letter or digit is dropped for exact matching.
SPECIAL_CHARS_PATTERN: re.Pattern = re.compile(r"[^0-9a-zA-Z]+")

# ── Public API ───────────────────────────────────────────────────────────────


def comparable_name(name: str) -> str:
    """Reduce *name* to lower-case ASCII letters and digits."""
    return SPECIAL_CHARS_PATTERN.sub("", name or "").lower()


def tokenize(query: str) -> List[str]:
    """Split *query* on whitespace into lower-cased tokens."""
    return [token.lower() for token in query.split()]


def matches_all(name: str, tokens: List[str]) -> bool:
    """True when every token is a substring of *name* (case-insensitive)."""
    lowered = name.lower()
    return all(token in lowered for token in tokens)


def find_exact(entries: Iterable["AppEntry"], name: str) -> Optional["AppEntry"]:
    """
    Return the first entry whose comparable name equals that of *name*.

    Parameters
    ----------
    entries : Catalogue entries, scanned in iteration order.
    name    : User-supplied app name.
    """
    wanted = comparable_name(name)
    for entry in entries:
        if entry.comparable_name == wanted:
            return entry
    return None


def search(entries: Iterable["AppEntry"], query: str) -> Iterator["AppEntry"]:
    """
    Lazily yield the entries matching every token of *query*.

    Yields all entries when query is empty/whitespace.
    """
    tokens = tokenize(query)
    for entry in entries:
        if matches_all(entry.name, tokens):
            yield entry
