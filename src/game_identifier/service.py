import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import GameIdentifierConfig
from .recognition import RecognizerPayload, parse_recognizer_payload
from .resolution.catalog_query import CatalogQueryAdapter
from .resolution.match_types import SearchOutcome
from .session.candidate import ResolutionCandidate
from .session.candidate_board import CandidateBoard
from .session.correction_flow import CorrectionFlow, Suggestion, SuggestionResult
from .session.session_manager import ResolutionSessionManager

logger = logging.getLogger(__name__)

NOTHING_RECOGNIZED_MESSAGE = "Could not recognise any games in this photo."

CapturePayload = Union[str, bytes, Dict[str, Any], Iterable[str]]


@dataclass
class CaptureResult:
    session_key: str
    candidates: List[ResolutionCandidate] = field(default_factory=list)
    comments: Optional[str] = None
    message: Optional[str] = None


class GameIdentificationService:
    """
    Facade over the identification pipeline.
    The ONLY entry point for the UI layers.
    """

    def __init__(
        self,
        config: GameIdentifierConfig,
        adapter: CatalogQueryAdapter,
        manager: ResolutionSessionManager,
        board: CandidateBoard,
        correction: Optional[CorrectionFlow] = None,
    ):
        self.config = config
        self.adapter = adapter
        self.manager = manager
        self.board = board
        self.correction = correction or CorrectionFlow(
            adapter, manager, board, limit=config.correction_limit
        )

    # ----------------------------
    # Capture
    # ----------------------------
    async def begin_capture(self, payload: CapturePayload) -> CaptureResult:
        """
        Start a new session for one recognizer response.

        Creates one idle candidate per unique title and queues its lookup
        with a staggered delay. Any earlier session is superseded and its
        unconfirmed candidates are removed from the board.

        :param payload: Recognizer JSON (text or dict) or a plain list of titles
        :return: CaptureResult with the new candidates
        :raises: RecognizerPayloadError if the recognizer response is malformed
        """
        recognized = _to_payload(payload)
        previous = self.manager.active_session
        session_key = self.manager.begin_session()
        if previous:
            self.board.clear_session(previous)

        if not recognized.games:
            logger.info("Recognizer returned no titles")
            return CaptureResult(
                session_key=session_key,
                comments=recognized.comments,
                message=NOTHING_RECOGNIZED_MESSAGE,
            )

        candidates = []
        for index, game in enumerate(recognized.games):
            candidate = self.board.add(
                ResolutionCandidate(
                    id=f"{session_key}-{index}",
                    raw_title=game.title,
                    session_key=session_key,
                    confidence_label=game.confidence or "unknown",
                    notes=game.notes,
                )
            )
            candidates.append(candidate)
            self.manager.enqueue_resolution(
                session_key,
                candidate.id,
                game.title,
                delay_ms=self.manager.stagger_delay_ms(index),
            )

        logger.info(f"Session {session_key}: queued {len(candidates)} titles")
        return CaptureResult(
            session_key=session_key,
            candidates=candidates,
            comments=recognized.comments,
        )

    async def wait_idle(self) -> List[ResolutionCandidate]:
        """Wait for queued lookups to finish and return the board contents."""
        await self.manager.join()
        return self.board.list()

    # ----------------------------
    # Search and correction
    # ----------------------------
    async def search(self, query: str, limit: Optional[int] = None) -> SearchOutcome:
        return await self.adapter.search(query, limit=limit or self.config.result_limit)

    async def suggest(self, query: str) -> SuggestionResult:
        return await self.correction.suggest(query)

    def select_suggestion(
        self,
        suggestion: Suggestion,
        candidate_id: Optional[str] = None,
    ) -> ResolutionCandidate:
        return self.correction.select(suggestion, candidate_id=candidate_id)

    async def retry_candidate(
        self,
        candidate_id: str,
        query: Optional[str] = None,
    ) -> Optional[ResolutionCandidate]:
        """
        Resolve one candidate again right away.

        :param query: Replacement title; defaults to the last searched term
        :return: Updated candidate, or None if the update was discarded
        :raises: CandidateNotFoundError if the id is unknown
        """
        return await self.correction.rerun(candidate_id, query)

    # ----------------------------
    # Board
    # ----------------------------
    @property
    def candidates(self) -> List[ResolutionCandidate]:
        return self.board.list()

    def confirm(self, candidate_id: str) -> ResolutionCandidate:
        return self.board.confirm(candidate_id)

    def discard(self, candidate_id: str) -> ResolutionCandidate:
        return self.board.discard(candidate_id)

    async def close(self) -> None:
        await self.manager.close()


def _to_payload(payload: CapturePayload) -> RecognizerPayload:
    if isinstance(payload, (str, bytes, dict)):
        return parse_recognizer_payload(payload)
    return parse_recognizer_payload({"games": [{"title": title} for title in payload]})
