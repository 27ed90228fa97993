from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

WORST_RANK = 999999

CATEGORY_RANK_FIELDS = (
    "abstracts_rank",
    "cgs_rank",
    "childrensgames_rank",
    "familygames_rank",
    "partygames_rank",
    "strategygames_rank",
    "thematic_rank",
    "wargames_rank",
)


def normalize_name(value: Optional[str]) -> str:
    """Lowercase and trim a title for matching."""
    if not value:
        return ""
    return value.strip().lower()


def parse_rank(value: Any) -> Optional[int]:
    """Ranks of 0, blank or garbage mean the game is unranked."""
    try:
        rank = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return rank if rank > 0 else None


def parse_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_float(value: Any) -> Optional[float]:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class CatalogEntry:
    """
    Canonical board game record as stored in the catalog.

    Entries are read-only from the resolution pipeline's point of view.
    ``name_normalized`` is the lowercase projection the store orders by.
    """
    id: str
    name: str
    name_normalized: str
    year_published: Optional[int] = None
    rank: Optional[int] = None
    average_rating: Optional[float] = None
    category_ranks: Mapping[str, int] = field(default_factory=dict, hash=False)

    @property
    def sort_rank(self) -> int:
        """Rank used for ordering; unranked games sort last."""
        return self.rank if self.rank is not None else WORST_RANK

    @classmethod
    def from_row(cls, row: Mapping[str, Any], name_field: str = "name_lower") -> Optional["CatalogEntry"]:
        """
        Build an entry from a store row.

        :param row: Raw document returned by the catalog store
        :param name_field: Field holding the precomputed lowercase name
        :return: CatalogEntry, or None if the row lacks an id or name
        """
        if not isinstance(row, Mapping):
            return None

        entry_id = row.get("id")
        name = row.get("name")
        if entry_id is None or not isinstance(name, str) or not name.strip():
            return None
        entry_id = str(entry_id).strip()
        if not entry_id:
            return None

        category_ranks = {}
        for key in CATEGORY_RANK_FIELDS:
            rank = parse_rank(row.get(key))
            if rank is not None:
                category_ranks[key] = rank

        return cls(
            id=entry_id,
            name=name.strip(),
            name_normalized=normalize_name(row.get(name_field) or name),
            year_published=parse_int(row.get("year_published")),
            rank=parse_rank(row.get("rank")),
            average_rating=parse_float(row.get("average")),
            category_ranks=category_ranks,
        )

    def to_row(self, name_field: str = "name_lower") -> Dict[str, Any]:
        """Serialize to the document shape the catalog store holds."""
        row: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            name_field: self.name_normalized,
            "year_published": self.year_published,
            "rank": self.rank,
            "average": self.average_rating,
        }
        row.update(self.category_ranks)
        return row


@dataclass(frozen=True)
class GameDetails:
    """Optional display fields fetched after a match is found."""
    id: str
    name: Optional[str] = None
    thumbnail: Optional[str] = None
    image: Optional[str] = None
    year_published: Optional[int] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    playing_time: Optional[int] = None
    min_age: Optional[int] = None
    description: Optional[str] = None
    average_rating: Optional[float] = None
    rank: Optional[int] = None
