"""
Catalog access layer.

The catalog store and the detail API are external services; this package
holds their protocols, an in-memory store for offline use, and the
BoardGameGeek detail client.
"""
from .store import CatalogStore, MAX_SENTINEL, prefix_upper_bound
from .memory_store import InMemoryCatalogStore
from .detail_provider import DetailProvider, CatalogDetailProvider
from .bgg_client import BGGDetailProvider, parse_thing_xml
from .provider_factory import create_catalog_store, create_detail_provider

__all__ = [
    "CatalogStore",
    "MAX_SENTINEL",
    "prefix_upper_bound",
    "InMemoryCatalogStore",
    "DetailProvider",
    "CatalogDetailProvider",
    "BGGDetailProvider",
    "parse_thing_xml",
    "create_catalog_store",
    "create_detail_provider",
]
