"""
In-memory candidate board.

The board is the UI state sink: it holds the current ResolutionCandidate for
every id and replaces it atomically. Listeners are told about every change.
"""
import logging
from typing import Callable, Dict, List, Optional

from ..exceptions import CandidateNotFoundError
from .candidate import ResolutionCandidate

logger = logging.getLogger(__name__)

Listener = Callable[[ResolutionCandidate], None]


class CandidateBoard:
    """
    Holds candidates in insertion order plus the ones the user confirmed.

    Usage:
        board = CandidateBoard()
        board.subscribe(lambda c: print(c.status.value, c.display_title))
        board.add(candidate)
    """

    def __init__(self):
        self._candidates: Dict[str, ResolutionCandidate] = {}
        self._confirmed: List[ResolutionCandidate] = []
        self._listeners: List[Listener] = []

    def add(self, candidate: ResolutionCandidate) -> ResolutionCandidate:
        if candidate.id in self._candidates:
            raise ValueError(f"Candidate {candidate.id} is already on the board")
        self._candidates[candidate.id] = candidate
        self._notify(candidate)
        return candidate

    def get(self, candidate_id: str) -> ResolutionCandidate:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(f"No candidate with id {candidate_id}")
        return candidate

    def find(self, candidate_id: str) -> Optional[ResolutionCandidate]:
        return self._candidates.get(candidate_id)

    def replace(self, candidate: ResolutionCandidate) -> ResolutionCandidate:
        """
        Swap in a new version of an existing candidate.

        :raises: CandidateNotFoundError if the candidate was removed meanwhile
        """
        if candidate.id not in self._candidates:
            raise CandidateNotFoundError(f"No candidate with id {candidate.id}")
        self._candidates[candidate.id] = candidate
        self._notify(candidate)
        return candidate

    def list(self) -> List[ResolutionCandidate]:
        return list(self._candidates.values())

    def for_session(self, session_key: str) -> List[ResolutionCandidate]:
        return [c for c in self._candidates.values() if c.session_key == session_key]

    def confirm(self, candidate_id: str) -> ResolutionCandidate:
        """
        Promote a candidate out of the pipeline.

        Works in any state: an idle or loading candidate is confirmed as its
        unresolved title, and any lookup still running for it is discarded.

        :raises: CandidateNotFoundError if the id is unknown
        """
        candidate = self._candidates.pop(candidate_id, None)
        if candidate is None:
            raise CandidateNotFoundError(f"No candidate with id {candidate_id}")
        self._confirmed.append(candidate)
        if candidate.is_settled:
            logger.info(f"Confirmed '{candidate.display_title}' ({candidate.status.value})")
        else:
            logger.info(f"Confirmed unresolved title '{candidate.raw_title}'")
        return candidate

    def clear_session(self, session_key: str) -> List[ResolutionCandidate]:
        """
        Remove every unconfirmed candidate of a session.

        :return: The removed candidates
        """
        removed = [c for c in self._candidates.values() if c.session_key == session_key]
        for candidate in removed:
            del self._candidates[candidate.id]
        if removed:
            logger.info(f"Cleared {len(removed)} candidates of session {session_key}")
        return removed

    def discard(self, candidate_id: str) -> ResolutionCandidate:
        candidate = self._candidates.pop(candidate_id, None)
        if candidate is None:
            raise CandidateNotFoundError(f"No candidate with id {candidate_id}")
        logger.debug(f"Discarded candidate {candidate_id}")
        return candidate

    @property
    def confirmed(self) -> List[ResolutionCandidate]:
        return list(self._confirmed)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        :return: Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, candidate: ResolutionCandidate) -> None:
        for listener in list(self._listeners):
            try:
                listener(candidate)
            except Exception as e:
                logger.warning(f"Candidate listener failed: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._candidates)
