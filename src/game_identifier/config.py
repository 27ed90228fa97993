from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError


@dataclass
class GameIdentifierConfig:
    # Catalog
    catalog_csv_path: Optional[str] = None
    catalog_max_rank: Optional[int] = None
    games_collection: str = "games"
    name_field: str = "name_lower"
    catalog_indexed: bool = True

    # Query planning
    short_query_length: int = 4
    short_page_size: int = 50
    default_page_size: int = 100
    multi_word_page_size: int = 200
    multi_word_max_length: int = 30
    stem_widening: bool = True
    scan_limit: int = 200
    result_limit: int = 10
    correction_limit: int = 20

    # Fuzzy matching
    fuzzy_threshold: float = 0.75
    fuzzy_prefix_width: int = 6
    fuzzy_prefix_threshold: float = 0.6
    fuzzy_min_query_length: int = 4

    # Timeouts (seconds); an indexed query plus the fallback scan must fit in search_timeout
    query_timeout: float = 2.5
    search_timeout: float = 6.0
    detail_timeout: float = 5.0

    # Job scheduling (milliseconds)
    stagger_initial_ms: int = 300
    stagger_step_ms: int = 220
    inter_job_pause_ms: int = 150

    # Circuit breaker
    circuit_failure_threshold: int = 2
    circuit_reset_seconds: float = 60.0

    # Detail enrichment
    enable_bgg_details: bool = False
    bgg_api_base: str = "https://boardgamegeek.com/xmlapi2"
    bgg_api_token: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    def validate(self) -> "GameIdentifierConfig":
        """
        Check numeric invariants.

        :return: self, for chaining
        :raises ConfigurationError: If any value is out of range
        """
        for name in ("fuzzy_threshold", "fuzzy_prefix_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be between 0.0 and 1.0, got {value}")

        for name in (
            "short_page_size",
            "default_page_size",
            "multi_word_page_size",
            "scan_limit",
            "result_limit",
            "correction_limit",
            "fuzzy_prefix_width",
            "circuit_failure_threshold",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value}")

        for name in ("query_timeout", "search_timeout", "detail_timeout"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be greater than zero, got {value}")

        if 2 * self.query_timeout >= self.search_timeout:
            raise ConfigurationError(
                f"search_timeout ({self.search_timeout}s) must exceed twice query_timeout "
                f"({self.query_timeout}s) so the fallback scan can finish inside a lookup"
            )

        for name in ("stagger_initial_ms", "stagger_step_ms", "inter_job_pause_ms"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(f"{name} cannot be negative, got {value}")

        return self
