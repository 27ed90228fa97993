"""
Core result types for catalog resolution.

Defines the match tiers and the scored pairing of a query to a catalog entry.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..models import CatalogEntry


class MatchType(str, Enum):
    """Match quality tiers, best first."""
    EXACT = "exact"
    STARTS_WITH = "startsWith"
    CONTAINS = "contains"
    FUZZY = "fuzzy"

    @property
    def order(self) -> int:
        return _TIER_ORDER[self]


_TIER_ORDER = {
    MatchType.EXACT: 0,
    MatchType.STARTS_WITH: 1,
    MatchType.CONTAINS: 2,
    MatchType.FUZZY: 3,
}


@dataclass(frozen=True)
class MatchCandidate:
    """
    Immutable scored pairing of a query to a catalog entry.

    Attributes:
        entry: The catalog entry matched
        similarity: Match score between 0.0 and 1.0
        match_type: Tier the entry was classified into
    """
    entry: CatalogEntry
    similarity: float
    match_type: MatchType

    def __post_init__(self):
        """Validate similarity score."""
        if not 0.0 <= self.similarity <= 1.0:
            raise ValueError(f"Similarity must be between 0.0 and 1.0, got {self.similarity}")

    def sort_key(self) -> tuple:
        return (
            self.match_type.order,
            self.entry.sort_rank,
            -self.similarity,
            self.entry.name_normalized,
            self.entry.id,
        )


@dataclass
class ResultPage:
    """Rows returned by one catalog query, already converted to entries."""
    entries: List[CatalogEntry]
    term: str
    source: str = "indexed"
    skipped_rows: int = 0

    def is_empty(self) -> bool:
        return not self.entries


@dataclass
class SearchOutcome:
    """
    Result of a full adapter search.

    ``error`` is set when the store could not be queried at all; ``matches``
    is then empty. ``degraded`` marks results that came from the bounded scan.
    """
    query: str
    searched_term: str
    matches: List[MatchCandidate] = field(default_factory=list)
    degraded: bool = False
    error: Optional[str] = None

    @property
    def top_match(self) -> Optional[MatchCandidate]:
        return self.matches[0] if self.matches else None

    def has_error(self) -> bool:
        return self.error is not None
