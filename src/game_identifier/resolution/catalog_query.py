"""
Catalog query adapter.

Turns a free-text title into prefix range queries against the catalog store
and hands the rows to the ranker. The fallback chain is the only retry logic
in the pipeline:

1. Indexed range query on the full normalized query (multi-word, ≤30 chars)
   or on its first word.
2. Empty multi-word result → one retry on the first word.
3. Still empty and the first word is longer than four characters → one retry
   on its four-character stem, so typos and run-together words reach the
   fuzzy and whitespace-insensitive tiers. Disabled with ``stem_widening=False``.
4. Indexed query error (missing index, timeout) → bounded unindexed scan.
5. Scan error → empty outcome carrying an error message.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from ..catalog.store import CatalogStore, Row, prefix_upper_bound
from ..exceptions import CatalogError, CatalogQueryError
from ..models import CatalogEntry
from .match_types import ResultPage, SearchOutcome
from .normalizer import first_word, normalize_query, split_words
from .result_ranker import ResultRanker

logger = logging.getLogger(__name__)

T = TypeVar("T")

CIRCUIT_OPEN_MESSAGE = "Catalog disabled after repeated failures"


class CatalogQueryAdapter:
    """
    Issues prefix queries against a CatalogStore and ranks the results.

    Every store call is raced against ``query_timeout``. After
    ``failure_threshold`` consecutive searches in which the store could not
    be reached at all, the adapter stops calling it until
    ``circuit_reset_seconds`` have passed.

    Usage:
        adapter = CatalogQueryAdapter(store)
        outcome = await adapter.search("Catan", limit=10)
        if outcome.top_match:
            print(outcome.top_match.entry.name)
    """

    def __init__(
        self,
        store: CatalogStore,
        ranker: Optional[ResultRanker] = None,
        collection: str = "games",
        name_field: str = "name_lower",
        query_timeout: float = 2.5,
        scan_limit: int = 200,
        short_query_length: int = 4,
        short_page_size: int = 50,
        default_page_size: int = 100,
        multi_word_page_size: int = 200,
        multi_word_max_length: int = 30,
        stem_widening: bool = True,
        failure_threshold: int = 2,
        circuit_reset_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        :param store: Catalog store to query
        :param ranker: Ranker applied to every page (default ResultRanker())
        :param collection: Collection holding catalog entries
        :param name_field: Lowercase name projection used for range queries
        :param query_timeout: Seconds each store call may take
        :param scan_limit: Rows read by the unindexed fallback scan
        :param short_query_length: Queries this long or shorter use the short page
        :param short_page_size: Page size for short queries
        :param default_page_size: Page size for longer single-word queries
        :param multi_word_page_size: Page size for multi-word queries
        :param multi_word_max_length: Longest multi-word query searched in full
        :param stem_widening: Retry an empty page once on the four-character stem
        :param failure_threshold: Consecutive failed searches before the circuit opens
        :param circuit_reset_seconds: Seconds the circuit stays open
        :param clock: Monotonic clock, injectable for tests
        """
        self._store = store
        self._ranker = ranker or ResultRanker()
        self.collection = collection
        self.name_field = name_field
        self.query_timeout = query_timeout
        self.scan_limit = scan_limit
        self.short_query_length = short_query_length
        self.short_page_size = short_page_size
        self.default_page_size = default_page_size
        self.multi_word_page_size = multi_word_page_size
        self.multi_word_max_length = multi_word_max_length
        self.stem_widening = stem_widening
        self.failure_threshold = failure_threshold
        self.circuit_reset_seconds = circuit_reset_seconds
        self._clock = clock

        self._consecutive_failures = 0
        self._circuit_opened_at: Optional[float] = None

    # ----------------------------
    # Query planning
    # ----------------------------
    def primary_term(self, normalized: str) -> str:
        """Full query for short multi-word titles, otherwise the first word."""
        if len(split_words(normalized)) > 1 and len(normalized) <= self.multi_word_max_length:
            return normalized
        return first_word(normalized)

    def page_size_for(self, normalized: str) -> int:
        if len(normalized) <= self.short_query_length:
            return self.short_page_size
        if len(split_words(normalized)) > 1:
            return self.multi_word_page_size
        return self.default_page_size

    # ----------------------------
    # Store access
    # ----------------------------
    async def query_by_prefix(self, term: str, upper_bound_term: str, limit: int) -> ResultPage:
        """
        Range query ``[term, upper_bound_term]`` on the name projection.

        :raises CatalogQueryError: On store failure or timeout
        """
        rows = await self._with_timeout(
            self._store.range_query(
                self.collection,
                self.name_field,
                term,
                upper_bound_term,
                self.name_field,
                limit,
            ),
            f"indexed query '{term}'",
        )
        return self._to_page(rows, term, "indexed")

    async def bounded_scan(self, term: str) -> ResultPage:
        """
        Unindexed read of ``scan_limit`` rows for client-side ranking.

        :raises CatalogQueryError: On store failure or timeout
        """
        rows = await self._with_timeout(
            self._store.scan(self.collection, self.scan_limit),
            "bounded scan",
        )
        return self._to_page(rows, term, "scan")

    async def get_entry(self, entry_id: str) -> Optional[CatalogEntry]:
        """Fetch one entry by canonical id; None if absent or malformed."""
        row = await self._with_timeout(
            self._store.get_by_id(self.collection, entry_id),
            f"lookup '{entry_id}'",
        )
        if row is None:
            return None
        return CatalogEntry.from_row(row, self.name_field)

    # ----------------------------
    # Search
    # ----------------------------
    async def search(self, query: str, limit: int = 10) -> SearchOutcome:
        """
        Resolve a free-text title to ranked catalog matches.

        Never raises for store problems: they are reported through
        ``SearchOutcome.error``.

        :param query: Title as typed or recognized
        :param limit: Maximum number of matches
        :return: SearchOutcome with matches best first
        """
        raw = (query or "").strip()
        normalized = normalize_query(raw)
        if not normalized:
            return SearchOutcome(query=raw, searched_term="")

        if self.circuit_open:
            logger.warning(f"Catalog circuit open, skipping search for '{normalized}'")
            return SearchOutcome(
                query=raw,
                searched_term=normalized,
                error=CIRCUIT_OPEN_MESSAGE,
            )

        term = self.primary_term(normalized)
        page_size = self.page_size_for(normalized)
        degraded = False

        try:
            page = await self.query_by_prefix(term, prefix_upper_bound(term), page_size)
            word = first_word(normalized)
            if page.is_empty() and term != word:
                logger.info(f"No rows for '{term}', retrying with first word '{word}'")
                term = word
                page = await self.query_by_prefix(term, prefix_upper_bound(term), page_size)
            if self.stem_widening and page.is_empty() and len(word) > self.short_query_length:
                stem = word[: self.short_query_length]
                logger.info(f"No rows for '{term}', widening to prefix '{stem}'")
                term = stem
                page = await self.query_by_prefix(term, prefix_upper_bound(term), self.default_page_size)
        except CatalogQueryError as exc:
            logger.warning(f"Indexed query failed ({exc}); falling back to bounded scan")
            try:
                page = await self.bounded_scan(term)
            except CatalogQueryError as scan_exc:
                self._record_failure()
                logger.warning(f"Bounded scan failed for '{normalized}': {scan_exc}")
                return SearchOutcome(query=raw, searched_term=term, error=str(scan_exc))
            except asyncio.CancelledError:
                # The caller gave up while the store was already failing.
                self._record_failure()
                logger.warning(f"Bounded scan for '{normalized}' cancelled by caller")
                raise
            degraded = True

        self._record_success()
        matches = self._ranker.rank(normalized, [page], limit=limit)
        logger.debug(
            f"Search '{normalized}' via {page.source} page of {len(page.entries)} rows -> {len(matches)} matches"
        )
        return SearchOutcome(
            query=raw,
            searched_term=term,
            matches=matches,
            degraded=degraded,
        )

    # ----------------------------
    # Circuit breaker
    # ----------------------------
    @property
    def circuit_open(self) -> bool:
        if self._circuit_opened_at is None:
            return False
        if self._clock() - self._circuit_opened_at >= self.circuit_reset_seconds:
            logger.info("Catalog circuit reset window elapsed; retrying store")
            self.reset_circuit()
            return False
        return True

    def reset_circuit(self) -> None:
        self._consecutive_failures = 0
        self._circuit_opened_at = None

    def _record_failure(self) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.failure_threshold and self._circuit_opened_at is None:
            self._circuit_opened_at = self._clock()
            logger.warning(
                f"Disabling catalog queries after {self._consecutive_failures} consecutive failures"
            )

    def _record_success(self) -> None:
        self._consecutive_failures = 0

    # ----------------------------
    # Helpers
    # ----------------------------
    async def _with_timeout(self, call: Awaitable[T], label: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.query_timeout)
        except asyncio.TimeoutError as exc:
            raise CatalogQueryError(f"Catalog {label} timed out after {self.query_timeout}s") from exc
        except CatalogError:
            raise
        except Exception as exc:
            raise CatalogQueryError(f"Catalog {label} failed: {exc}") from exc

    def _to_page(self, rows: List[Row], term: str, source: str) -> ResultPage:
        entries = []
        skipped = 0
        for row in rows or []:
            entry = CatalogEntry.from_row(row, self.name_field)
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)
        if skipped:
            logger.warning(f"Skipped {skipped} malformed catalog rows for '{term}'")
        return ResultPage(entries=entries, term=term, source=source, skipped_rows=skipped)
