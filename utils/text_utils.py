"""
Text utilities for catalog name matching.

normalize_name() and similarity() are the only definitions of "same name"
used anywhere in the import pipeline; the classifier and the commit
engine both go through here.
"""

import re
from typing import Any, Iterable, Optional

from rapidfuzz.distance import Levenshtein

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

STOP_WORD = "the"


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize an entity name for comparison.

    - "Jack  Daniel's!" → "jack daniels"
    - "  The Glenlivet Co. " → "the glenlivet co"

    Punctuation is stripped before whitespace is collapsed so the result
    is a fixed point: normalize_name(normalize_name(x)) == normalize_name(x).

    Args:
        name: Raw display name (None is treated as empty)

    Returns:
        Lowercase, punctuation-free, single-spaced string
    """
    if not name:
        return ""

    lowered = name.lower()
    without_punctuation = _NON_WORD.sub("", lowered)
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def first_significant_token(name: Optional[str]) -> str:
    """
    First word of the normalized name, skipping a leading "the".

    "The Glenlivet Co" → "glenlivet", "The" → "".
    """
    tokens = [t for t in normalize_name(name).split(" ") if t]

    if tokens and tokens[0] == STOP_WORD:
        tokens = tokens[1:]

    return tokens[0] if tokens else ""


def similarity(a: str, b: str) -> float:
    """
    Edit-distance similarity in [0, 1].

    (longest - levenshtein(a, b)) / longest, with two empty strings
    scoring 1.0. Symmetric in its arguments.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0

    return (longest - Levenshtein.distance(a, b)) / longest


def split_list_field(value: Any) -> list[str]:
    """
    Split a comma-separated cell into trimmed, non-empty tokens.

    Accepts an already-split list (JSON payloads) as well as a string.

    Examples:
        "spirits, wine,," → ["spirits", "wine"]
        None → []
    """
    if value is None:
        return []

    if isinstance(value, str):
        parts: Iterable = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        parts = [value]

    tokens = []
    for part in parts:
        if part is None:
            continue
        token = str(part).strip()
        if token:
            tokens.append(token)
    return tokens


def clean_text(value: Any, max_length: int = 255) -> Optional[str]:
    """
    Clean a free-text cell for storage.

    - Strips whitespace
    - Truncates to max length
    - Returns None for empty/whitespace-only values

    Args:
        value: Raw cell value from an uploaded row
        max_length: Maximum characters to store

    Returns:
        Cleaned text or None
    """
    if value is None:
        return None

    text = str(value).strip()

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length]

    return text
