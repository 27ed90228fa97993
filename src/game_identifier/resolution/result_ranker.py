"""
Tiered ranking of catalog result pages.

Escalation per entry: exact → startsWith → contains → fuzzy. The fuzzy tier
is the only quadratic step and runs only when the cheaper tiers left room
under the requested limit.
"""
import logging
from typing import Iterable, List, Optional

from ..models import CatalogEntry
from .match_types import MatchCandidate, MatchType, ResultPage
from .normalizer import compact, normalize_query
from .similarity import FuzzyScorer

logger = logging.getLogger(__name__)

EXACT_SCORE = 1.0
COMPACT_EXACT_SCORE = 0.98
COMPACT_STARTS_WITH_SCORE = 0.98
COMPACT_CONTAINS_SCORE = 0.95
REVERSE_CONTAINS_SCORE = 0.9


class ResultRanker:
    """
    Merges one or more result pages into a single ordered candidate list.

    Ordering is tier first, then catalog rank (unranked last), then score
    descending, with name and id as a final tie-break so the output never
    depends on the order the store returned rows in.

    Usage:
        ranker = ResultRanker()
        matches = ranker.rank("catan", [page], limit=10)
    """

    def __init__(
        self,
        fuzzy_scorer: Optional[FuzzyScorer] = None,
        fuzzy_min_query_length: int = 4,
        reverse_contains_min_length: int = 4,
    ):
        """
        :param fuzzy_scorer: Scorer for the fuzzy tier (default FuzzyScorer())
        :param fuzzy_min_query_length: Shortest query that may be fuzzy matched
        :param reverse_contains_min_length: Shortest query in which a whole entry
            name may be found ("catan big box" → "catan")
        """
        self._fuzzy = fuzzy_scorer or FuzzyScorer()
        self.fuzzy_min_query_length = fuzzy_min_query_length
        self.reverse_contains_min_length = reverse_contains_min_length

    def rank(
        self,
        query: str,
        pages: Iterable[ResultPage],
        limit: int = 10,
    ) -> List[MatchCandidate]:
        """
        Classify and order every entry in ``pages`` against ``query``.

        :param query: Raw or normalized search query
        :param pages: Result pages from the catalog adapter
        :param limit: Maximum number of matches to return
        :return: Matches sorted best first, at most ``limit`` long
        """
        normalized = normalize_query(query)
        if not normalized or limit <= 0:
            return []
        query_compact = compact(normalized)

        matches: List[MatchCandidate] = []
        unclassified: List[CatalogEntry] = []
        for entry in _unique_entries(pages):
            match = self.classify(entry, normalized, query_compact)
            if match:
                matches.append(match)
            else:
                unclassified.append(entry)

        if (
            unclassified
            and len(matches) < limit
            and len(normalized) >= self.fuzzy_min_query_length
        ):
            matches.extend(self._fuzzy_matches(normalized, unclassified))

        matches.sort(key=MatchCandidate.sort_key)
        logger.debug(
            f"Ranked {len(matches)} matches for '{normalized}' (returning {min(limit, len(matches))})"
        )
        return matches[:limit]

    def classify(
        self,
        entry: CatalogEntry,
        query: str,
        query_compact: Optional[str] = None,
    ) -> Optional[MatchCandidate]:
        """
        Place an entry in the exact, startsWith or contains tier.

        :param entry: Catalog entry to classify
        :param query: Normalized query
        :param query_compact: Query with whitespace removed (computed if omitted)
        :return: MatchCandidate, or None if only fuzzy matching could apply
        """
        if query_compact is None:
            query_compact = compact(query)
        name = entry.name_normalized
        name_compact = compact(name)

        if name == query:
            return MatchCandidate(entry, EXACT_SCORE, MatchType.EXACT)
        if name_compact == query_compact:
            return MatchCandidate(entry, COMPACT_EXACT_SCORE, MatchType.EXACT)

        if name.startswith(query):
            return MatchCandidate(entry, EXACT_SCORE, MatchType.STARTS_WITH)
        if name_compact.startswith(query_compact):
            return MatchCandidate(entry, COMPACT_STARTS_WITH_SCORE, MatchType.STARTS_WITH)

        if query in name:
            return MatchCandidate(entry, EXACT_SCORE, MatchType.CONTAINS)
        if query_compact in name_compact:
            return MatchCandidate(entry, COMPACT_CONTAINS_SCORE, MatchType.CONTAINS)
        if name and len(query) >= self.reverse_contains_min_length and name in query:
            return MatchCandidate(entry, REVERSE_CONTAINS_SCORE, MatchType.CONTAINS)

        return None

    def _fuzzy_matches(self, query: str, entries: List[CatalogEntry]) -> List[MatchCandidate]:
        fuzzy = []
        for entry in entries:
            score = self._fuzzy.score(query, entry.name_normalized)
            if score is not None:
                fuzzy.append(MatchCandidate(entry, score, MatchType.FUZZY))
        return fuzzy


def _unique_entries(pages: Iterable[ResultPage]) -> List[CatalogEntry]:
    """Flatten pages, keeping the first occurrence of each entry id."""
    seen = set()
    entries = []
    for page in pages:
        for entry in page.entries:
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
    return entries
