"""
Detail enrichment providers.

A detail lookup runs after a match is found and only adds display fields.
Its failure must never undo the match.
"""
from abc import ABC, abstractmethod
from typing import Optional

from ..exceptions import CatalogError, DetailFetchError
from ..models import GameDetails, parse_float, parse_int, parse_rank
from .store import CatalogStore


class DetailProvider(ABC):
    """Protocol for fetching display details by canonical catalog id."""

    @abstractmethod
    async def get_details(self, entry_id: str) -> Optional[GameDetails]:
        """
        Fetch display details for a game.

        :param entry_id: Canonical catalog id
        :return: GameDetails, or None if the id is unknown
        :raises DetailFetchError: If the lookup itself fails
        """


class CatalogDetailProvider(DetailProvider):
    """
    Details read straight from the catalog store row.

    The catalog only carries ranking data, so image and player-count fields
    stay empty.
    """

    def __init__(self, store: CatalogStore, collection: str = "games"):
        self._store = store
        self.collection = collection

    async def get_details(self, entry_id: str) -> Optional[GameDetails]:
        try:
            row = await self._store.get_by_id(self.collection, entry_id)
        except CatalogError as exc:
            raise DetailFetchError(f"Catalog lookup failed for {entry_id}: {exc}") from exc

        if not row or not row.get("name"):
            return None

        return GameDetails(
            id=str(row.get("id", entry_id)),
            name=row.get("name"),
            year_published=parse_int(row.get("year_published")),
            average_rating=parse_float(row.get("average")),
            rank=parse_rank(row.get("rank")),
        )
