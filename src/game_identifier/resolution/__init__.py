"""
Catalog resolution layer.

Turns free-text game titles into ranked canonical catalog entries.

Key components:
- similarity: edit-distance scoring with a prefix pre-check
- ResultRanker: exact → startsWith → contains → fuzzy tiers
- CatalogQueryAdapter: prefix range queries with the fallback chain
"""
from .similarity import edit_distance, similarity, FuzzyScorer
from .normalizer import normalize_query, compact
from .match_types import MatchType, MatchCandidate, ResultPage, SearchOutcome
from .result_ranker import ResultRanker
from .catalog_query import CatalogQueryAdapter
from .resolver_factory import create_query_adapter, create_ranker

__all__ = [
    "edit_distance",
    "similarity",
    "FuzzyScorer",
    "normalize_query",
    "compact",
    "MatchType",
    "MatchCandidate",
    "ResultPage",
    "SearchOutcome",
    "ResultRanker",
    "CatalogQueryAdapter",
    "create_query_adapter",
    "create_ranker",
]
