"""
Pattern Matching Helpers

Table-driven "first match wins" lookup shared by the column mapper, mode
detection and the categorizer.
"""

import re
from collections.abc import Callable, Sequence
from typing import Any

# Ordered (label, patterns) pairs. Patterns are plain keywords or compiled
# regular expressions depending on the table.
PatternTable = Sequence[tuple[str, Sequence[Any]]]


def contains(text: str, keyword: str) -> bool:
    return keyword in text


def searches(text: str, pattern: re.Pattern) -> bool:
    return pattern.search(text) is not None


def first_match(
    text: str,
    table: PatternTable,
    test: Callable[[str, Any], bool] = contains,
) -> str | None:
    """Return the label of the first table entry with a matching pattern.

    Args:
        text: Text to test (callers normalize case beforehand)
        table: Ordered (label, patterns) pairs
        test: Predicate applied as ``test(text, pattern)``

    Returns:
        Matching label, or None if no entry matches
    """
    if not text:
        return None

    for label, patterns in table:
        if any(test(text, pattern) for pattern in patterns):
            return label
    return None


def all_matches(
    text: str,
    table: PatternTable,
    test: Callable[[str, Any], bool] = contains,
) -> list[str]:
    """Return every label whose patterns match, in table order."""
    if not text:
        return []
    return [
        label for label, patterns in table
        if any(test(text, pattern) for pattern in patterns)
    ]


def contains_word(text: str, keyword: str) -> bool:
    """True when ``keyword`` occurs in ``text`` bounded by non-alphanumerics."""
    pattern = r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])"
    return re.search(pattern, text, re.IGNORECASE) is not None


def starts_word(text: str, keyword: str) -> bool:
    """True when a word in ``text`` begins with ``keyword`` ("cr" in "cramt")."""
    pattern = r"(?<![a-z0-9])" + re.escape(keyword)
    return re.search(pattern, text, re.IGNORECASE) is not None
