"""
In-process catalog store backed by a sorted name projection.

Used for local development, for the offline CSV catalog, and in tests. The
``indexed`` switch reproduces a remote store whose ordered index has not
been built yet.
"""
import bisect
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import CatalogIndexUnavailableError, CatalogQueryError
from ..models import CatalogEntry
from .store import CatalogStore, Row


class InMemoryCatalogStore(CatalogStore):
    """
    CatalogStore over a list of CatalogEntry objects.

    Usage:
        store = InMemoryCatalogStore(entries)
        rows = await store.range_query("games", "name_lower", "cat", "cat\\uf8ff", "name_lower", 50)
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry] = (),
        collection: str = "games",
        name_field: str = "name_lower",
        indexed: bool = True,
    ):
        """
        :param entries: Catalog entries to serve
        :param collection: The single collection name this store answers for
        :param name_field: Lowercase projection field the index is built on
        :param indexed: When False, range queries fail as if the index were missing
        """
        self.collection = collection
        self.name_field = name_field
        self.indexed = indexed
        self._rows: Dict[str, Row] = {}
        self._index: List[Tuple[str, str]] = []
        self.add_entries(entries)

    def add_entries(self, entries: Iterable[CatalogEntry]) -> None:
        for entry in entries:
            self._rows[entry.id] = entry.to_row(self.name_field)
        self._index = sorted(
            (row[self.name_field], entry_id) for entry_id, row in self._rows.items()
        )

    def add_row(self, row: Row) -> None:
        """Insert a raw row as-is; lets callers stage malformed documents."""
        entry_id = str(row.get("id", f"row-{len(self._rows)}"))
        self._rows[entry_id] = dict(row)
        name = row.get(self.name_field)
        bisect.insort(self._index, (name if isinstance(name, str) else "", entry_id))

    def __len__(self) -> int:
        return len(self._rows)

    async def range_query(
        self,
        collection: str,
        field: str,
        lower_bound: str,
        upper_bound: str,
        order_by: str,
        limit: int,
    ) -> List[Row]:
        self._check_collection(collection)
        if not self.indexed or field != self.name_field or order_by != self.name_field:
            raise CatalogIndexUnavailableError(
                f"No ordered index on {collection}.{field}; create one before range queries"
            )

        start = bisect.bisect_left(self._index, (lower_bound, ""))
        rows: List[Row] = []
        for name, entry_id in self._index[start:]:
            if name > upper_bound or len(rows) >= limit:
                break
            rows.append(dict(self._rows[entry_id]))
        return rows

    async def get_by_id(self, collection: str, entry_id: str) -> Optional[Row]:
        self._check_collection(collection)
        row = self._rows.get(str(entry_id))
        return dict(row) if row is not None else None

    async def scan(self, collection: str, limit: int) -> List[Row]:
        self._check_collection(collection)
        rows = []
        for row in self._rows.values():
            if len(rows) >= limit:
                break
            rows.append(dict(row))
        return rows

    def _check_collection(self, collection: str) -> None:
        if collection != self.collection:
            raise CatalogQueryError(f"Unknown collection: {collection}")
