"""
Factory for the catalog query adapter.

Wires the similarity scorer, ranker and adapter from configuration.
"""
from typing import Optional

from ..catalog.store import CatalogStore
from ..config import GameIdentifierConfig
from .catalog_query import CatalogQueryAdapter
from .result_ranker import ResultRanker
from .similarity import FuzzyScorer


def create_ranker(config: Optional[GameIdentifierConfig] = None) -> ResultRanker:
    config = config or GameIdentifierConfig()
    scorer = FuzzyScorer(
        threshold=config.fuzzy_threshold,
        prefix_width=config.fuzzy_prefix_width,
        prefix_threshold=config.fuzzy_prefix_threshold,
    )
    return ResultRanker(
        fuzzy_scorer=scorer,
        fuzzy_min_query_length=config.fuzzy_min_query_length,
    )


def create_query_adapter(
    store: CatalogStore,
    config: Optional[GameIdentifierConfig] = None,
    ranker: Optional[ResultRanker] = None,
) -> CatalogQueryAdapter:
    """
    Factory function to create a CatalogQueryAdapter.

    :param store: Catalog store to query
    :param config: GameIdentifierConfig instance (defaults if None)
    :param ranker: Optional pre-built ranker
    :return: Configured CatalogQueryAdapter
    """
    config = config or GameIdentifierConfig()
    return CatalogQueryAdapter(
        store,
        ranker=ranker or create_ranker(config),
        collection=config.games_collection,
        name_field=config.name_field,
        query_timeout=config.query_timeout,
        scan_limit=config.scan_limit,
        short_query_length=config.short_query_length,
        short_page_size=config.short_page_size,
        default_page_size=config.default_page_size,
        multi_word_page_size=config.multi_word_page_size,
        multi_word_max_length=config.multi_word_max_length,
        stem_widening=config.stem_widening,
        failure_threshold=config.circuit_failure_threshold,
        circuit_reset_seconds=config.circuit_reset_seconds,
    )
