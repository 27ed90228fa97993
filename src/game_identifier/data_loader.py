import csv
import logging
from typing import List, Optional

from .models import CATEGORY_RANK_FIELDS, CatalogEntry, normalize_name, parse_float, parse_int, parse_rank

logger = logging.getLogger(__name__)


class CatalogDataLoader:
    """
    Loads and normalizes the BoardGameGeek ranks CSV into catalog entries.
    """
    def __init__(self, csv_path: str, max_rank: Optional[int] = None, include_expansions: bool = True):
        """
        :param csv_path: Path to boardgames_ranks.csv
        :param max_rank: Keep only ranked games at or above this rank
        :param include_expansions: Whether rows flagged is_expansion are kept
        """
        self.csv_path = csv_path
        self.max_rank = max_rank
        self.include_expansions = include_expansions
        self.skipped_rows = 0

    def load_entries(self) -> List[CatalogEntry]:
        entries: List[CatalogEntry] = []
        self.skipped_rows = 0

        with open(self.csv_path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                row = {(k or "").strip().lower(): v for k, v in row.items()}
                entry = self._parse_row(row)
                if entry is None:
                    self.skipped_rows += 1
                    continue
                if self._keep(entry, row):
                    entries.append(entry)

        if self.skipped_rows:
            logger.warning(f"Skipped {self.skipped_rows} malformed rows in {self.csv_path}")
        logger.info(f"Loaded {len(entries)} catalog entries from {self.csv_path}")
        return entries

    def _parse_row(self, row: dict) -> Optional[CatalogEntry]:
        entry_id = self._clean_text(row.get("id"))
        name = self._clean_text(row.get("name"))
        if not entry_id or not name:
            return None

        category_ranks = {}
        for key in CATEGORY_RANK_FIELDS:
            rank = parse_rank(row.get(key))
            if rank is not None:
                category_ranks[key] = rank

        return CatalogEntry(
            id=entry_id,
            name=name,
            name_normalized=normalize_name(name),
            year_published=parse_int(row.get("yearpublished")),
            rank=parse_rank(row.get("rank")),
            average_rating=parse_float(row.get("average")),
            category_ranks=category_ranks,
        )

    def _keep(self, entry: CatalogEntry, row: dict) -> bool:
        if not self.include_expansions and self._clean_text(row.get("is_expansion")) == "1":
            return False
        if self.max_rank is not None:
            return entry.rank is not None and entry.rank <= self.max_rank
        return True

    def _clean_text(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value if value else None
