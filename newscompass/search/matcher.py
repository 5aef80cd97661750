"""
Query matching for NewsCompass.

A query is a list of synonym groups. An item matches when every group has
at least one term that appears in the item's text.
"""
from typing import Iterable, List, Optional, Sequence


def searchable_text(*parts: Optional[str]) -> str:
    """Join title, excerpt and content into one lower-cased haystack."""
    return " ".join((part or "").lower() for part in parts)


def matches(text: str, groups: Sequence[Sequence[str]]) -> bool:
    """
    Check whether text satisfies every synonym group.

    Args:
        text: Text to search in
        groups: Synonym groups; terms are ORed within a group, groups are ANDed

    Returns:
        True if every group has a term that is a substring of text. An empty
        query matches nothing.
    """
    if not groups:
        return False
    haystack = text.lower()
    return all(
        any(term.lower() in haystack for term in group if term)
        for group in groups
    )


def matches_any_field(fields: Iterable[Optional[str]], groups: Sequence[Sequence[str]]) -> bool:
    """
    Like :func:`matches`, but a term may hit any one of several separate fields.
    """
    if not groups:
        return False
    haystacks: List[str] = [(f or "").lower() for f in fields]
    return all(
        any(term and term.lower() in haystack for term in group for haystack in haystacks)
        for group in groups
    )
