"""
Edit-distance similarity for fuzzy title matching using rapidfuzz.

Handles typos and near-misses ("imperius" → "imperious") once the cheaper
tiers have failed.
"""
from typing import Optional

from rapidfuzz.distance import Levenshtein


def edit_distance(a: str, b: str) -> int:
    """
    Classic edit distance; insertions, deletions and substitutions cost 1.

    :param a: First string
    :param b: Second string
    :return: Minimum number of edits turning ``a`` into ``b``
    """
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1] normalized by the longer string.

    Two empty strings are identical and score 1.0.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


class FuzzyScorer:
    """
    Fallback scorer used by the ranker for entries no cheaper tier matched.

    A prefix pre-check compares only the first ``prefix_width`` characters
    before computing the full distance. It prunes most of a large page for
    the cost of occasionally missing a match whose prefix diverges.
    """

    def __init__(
        self,
        threshold: float = 0.75,
        prefix_width: int = 6,
        prefix_threshold: float = 0.6,
    ):
        """
        :param threshold: Minimum full-string similarity to accept (0.0-1.0)
        :param prefix_width: Number of leading characters compared in the pre-check
        :param prefix_threshold: Minimum prefix similarity to continue (0.0-1.0)
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {threshold}")
        if not 0.0 <= prefix_threshold <= 1.0:
            raise ValueError(f"Prefix threshold must be between 0.0 and 1.0, got {prefix_threshold}")
        if prefix_width < 1:
            raise ValueError(f"Prefix width must be positive, got {prefix_width}")

        self.threshold = threshold
        self.prefix_width = prefix_width
        self.prefix_threshold = prefix_threshold

    def score(self, query: str, candidate: str) -> Optional[float]:
        """
        Score a normalized query against a normalized candidate name.

        :return: Similarity if it clears both gates, otherwise None
        """
        width = self.prefix_width
        if similarity(query[:width], candidate[:width]) < self.prefix_threshold:
            return None

        score = similarity(query, candidate)
        if score < self.threshold:
            return None
        return score
