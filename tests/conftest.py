"""
Shared fixtures for the game identifier tests.
"""
import pytest

from game_identifier.catalog.memory_store import InMemoryCatalogStore
from game_identifier.models import CatalogEntry, normalize_name


def build_entry(entry_id, name, rank=None, year=None):
    return CatalogEntry(
        id=str(entry_id),
        name=name,
        name_normalized=normalize_name(name),
        year_published=year,
        rank=rank,
    )


@pytest.fixture
def make_entry():
    """Factory for CatalogEntry objects."""
    return build_entry


@pytest.fixture
def catalog_entries():
    """A small catalog covering every match tier."""
    return [
        build_entry("13", "Catan", rank=500, year=1995),
        build_entry("999", "Catan: Cities & Knights", rank=800, year=1998),
        build_entry("27710", "Catan Junior", rank=None, year=2011),
        build_entry("40692", "Small World", rank=300, year=2009),
        build_entry("1406", "Monopoly", rank=None, year=1935),
        build_entry("254640", "Imperious", rank=9000, year=2018),
        build_entry("30549", "Pandemic", rank=100, year=2008),
        build_entry("822", "Carcassonne", rank=200, year=2000),
        build_entry("9209", "Ticket to Ride", rank=250, year=2004),
    ]


@pytest.fixture
def store(catalog_entries):
    """Indexed in-memory store over the small catalog."""
    return InMemoryCatalogStore(catalog_entries)


@pytest.fixture
def unindexed_store(catalog_entries):
    """Store whose range queries fail as if the index were missing."""
    return InMemoryCatalogStore(catalog_entries, indexed=False)
