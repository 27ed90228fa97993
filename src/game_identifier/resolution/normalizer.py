"""
Query normalization shared by the adapter and the ranker.
"""
import re
from typing import List

from ..models import normalize_name

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Lowercase and trim; inner whitespace is left as typed."""
    return normalize_name(query)


def compact(text: str) -> str:
    """Drop all whitespace so "small world" and "smallworld" compare equal."""
    return _WHITESPACE.sub("", text)


def split_words(text: str) -> List[str]:
    return text.split()


def first_word(text: str) -> str:
    words = split_words(text)
    return words[0] if words else ""
