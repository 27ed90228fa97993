"""
Catalog store protocol.

The document store is an external collaborator. This module fixes the
boundary the resolution pipeline relies on: ordered range queries on a
lowercase projection, lookups by id, and a bounded unindexed scan.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# Last codepoint of the private-use area; sorts after every character a title contains,
# so [term, term + MAX_SENTINEL] covers every string with that prefix.
MAX_SENTINEL = "\uf8ff"

Row = Dict[str, Any]


def prefix_upper_bound(term: str) -> str:
    return term + MAX_SENTINEL


class CatalogStore(ABC):
    """
    Protocol for read access to the game catalog.

    Implementations raise ``CatalogIndexUnavailableError`` when an ordered
    query needs an index that does not exist, and ``CatalogQueryError`` for
    any other transport or execution failure.
    """

    @abstractmethod
    async def range_query(
        self,
        collection: str,
        field: str,
        lower_bound: str,
        upper_bound: str,
        order_by: str,
        limit: int,
    ) -> List[Row]:
        """
        Return rows whose ``field`` lies in ``[lower_bound, upper_bound]``.

        :param collection: Collection name
        :param field: Field the bounds apply to
        :param lower_bound: Inclusive lower bound
        :param upper_bound: Inclusive upper bound
        :param order_by: Field to order results by
        :param limit: Maximum number of rows
        :return: Matching rows, ordered
        """

    @abstractmethod
    async def get_by_id(self, collection: str, entry_id: str) -> Optional[Row]:
        """Return the row with ``entry_id`` or None."""

    @abstractmethod
    async def scan(self, collection: str, limit: int) -> List[Row]:
        """Return up to ``limit`` rows with no ordering guarantee."""
