"""
Factories for the catalog store and detail provider.
"""
import logging
from typing import Optional

from ..config import GameIdentifierConfig
from ..data_loader import CatalogDataLoader
from .bgg_client import BGGDetailProvider
from .detail_provider import CatalogDetailProvider, DetailProvider
from .memory_store import InMemoryCatalogStore
from .store import CatalogStore

logger = logging.getLogger(__name__)


def create_catalog_store(config: GameIdentifierConfig) -> InMemoryCatalogStore:
    """
    Build an in-memory store from the configured CSV catalog.

    An empty store is returned when no CSV path is configured.
    """
    entries = []
    if config.catalog_csv_path:
        loader = CatalogDataLoader(config.catalog_csv_path, max_rank=config.catalog_max_rank)
        entries = loader.load_entries()
    else:
        logger.warning("No CATALOG_CSV_PATH configured; starting with an empty catalog")

    return InMemoryCatalogStore(
        entries,
        collection=config.games_collection,
        name_field=config.name_field,
        indexed=config.catalog_indexed,
    )


def create_detail_provider(
    config: GameIdentifierConfig,
    store: Optional[CatalogStore] = None,
) -> Optional[DetailProvider]:
    """
    Pick the detail provider: BoardGameGeek when enabled, else the catalog store.

    :return: DetailProvider, or None if neither is available
    """
    if config.enable_bgg_details:
        return BGGDetailProvider(
            api_base=config.bgg_api_base,
            token=config.bgg_api_token,
            timeout=config.detail_timeout,
        )
    if store is not None:
        return CatalogDetailProvider(store, collection=config.games_collection)
    return None
