"""
Correction and disambiguation flow.

Lets the user replace a wrong or missing match: search a free-text title,
pick one of the suggestions, and write it back onto the original candidate
or onto a new manual one.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import CatalogEntry, GameDetails
from ..resolution.catalog_query import CatalogQueryAdapter
from ..resolution.match_types import MatchType
from .candidate import CandidateStatus, ResolutionCandidate
from .candidate_board import CandidateBoard
from .session_manager import ResolutionSessionManager

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Enter a game title to search."
NO_SUGGESTIONS_MESSAGE = "No similar games found. Try a different title."
SEARCH_FAILED_MESSAGE = "Something went wrong while searching. Please try again."


@dataclass(frozen=True)
class Suggestion:
    """A ranked catalog entry offered to the user, with optional details."""
    entry: CatalogEntry
    match_type: MatchType
    similarity: float
    details: Optional[GameDetails] = None

    @property
    def name(self) -> str:
        if self.details and self.details.name:
            return self.details.name
        return self.entry.name

    @property
    def thumbnail(self) -> Optional[str]:
        return self.details.thumbnail if self.details else None


@dataclass
class SuggestionResult:
    query: str
    suggestions: List[Suggestion] = field(default_factory=list)
    message: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.suggestions


class CorrectionFlow:
    """
    One-shot user-triggered searches, outside the staggered queue.

    Usage:
        flow = CorrectionFlow(adapter, manager, board)
        result = await flow.suggest("small wrld")
        candidate = flow.select(result.suggestions[0], candidate_id=candidate.id)
    """

    def __init__(
        self,
        adapter: CatalogQueryAdapter,
        manager: ResolutionSessionManager,
        board: CandidateBoard,
        limit: int = 20,
    ):
        self._adapter = adapter
        self._manager = manager
        self._board = board
        self._limit = limit

    async def suggest(self, query: str) -> SuggestionResult:
        """
        Search the catalog for replacement candidates.

        Each suggestion is enriched with details one after another, so the
        store never sees concurrent lookups from this flow.

        :param query: Free-text title typed by the user
        :return: SuggestionResult; ``message`` explains an empty list
        """
        trimmed = (query or "").strip()
        if not trimmed:
            return SuggestionResult(query="", message=EMPTY_QUERY_MESSAGE)

        outcome = await self._adapter.search(trimmed, limit=self._limit)
        if outcome.has_error():
            logger.warning(f"Suggestion search for '{trimmed}' failed: {outcome.error}")
            return SuggestionResult(query=trimmed, message=SEARCH_FAILED_MESSAGE)
        if not outcome.matches:
            return SuggestionResult(query=trimmed, message=NO_SUGGESTIONS_MESSAGE)

        suggestions = []
        for match in outcome.matches:
            details = await self._manager.fetch_details(match.entry.id)
            suggestions.append(
                Suggestion(
                    entry=match.entry,
                    match_type=match.match_type,
                    similarity=match.similarity,
                    details=details,
                )
            )

        logger.info(f"{len(suggestions)} suggestions for '{trimmed}'")
        return SuggestionResult(query=trimmed, suggestions=suggestions)

    def select(
        self,
        suggestion: Suggestion,
        candidate_id: Optional[str] = None,
    ) -> ResolutionCandidate:
        """
        Apply a chosen suggestion.

        Updates the originating candidate in place when it is still on the
        board; otherwise adds a new candidate already in the matched state.
        """
        if candidate_id:
            existing = self._board.find(candidate_id)
            if existing is not None:
                updated = existing.select(
                    suggestion.entry,
                    details=suggestion.details,
                    match_type=suggestion.match_type,
                )
                logger.info(f"Corrected {candidate_id} to '{suggestion.entry.name}'")
                return self._board.replace(updated)
            logger.info(f"Candidate {candidate_id} is gone; adding '{suggestion.entry.name}' manually")

        session_key = self._manager.active_session or "session-manual"
        candidate = ResolutionCandidate(
            id=f"{session_key}-manual-{uuid.uuid4().hex[:8]}",
            raw_title=suggestion.entry.name,
            session_key=session_key,
            status=CandidateStatus.MATCHED,
            resolved_entry=suggestion.entry,
            match_type=suggestion.match_type,
            details=suggestion.details,
            confidence_label="manual",
            origin="correction",
        )
        return self._board.add(candidate)

    async def rerun(self, candidate_id: str, query: Optional[str] = None) -> Optional[ResolutionCandidate]:
        """
        Resolve a candidate again with a user-supplied query.

        Falls back to the candidate's last searched term, then its raw title.
        """
        candidate = self._board.get(candidate_id)
        term = (query or "").strip() or candidate.searched_term or candidate.raw_title
        return await self._manager.resolve_now(candidate_id, term)
