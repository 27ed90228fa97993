"""
Resolution sessions.

Key components:
- ResolutionCandidate: immutable candidate with its state machine
- CandidateBoard: atomic UI sink for candidate updates
- ResolutionSessionManager: session tokens and the serialized job queue
- CorrectionFlow: user-triggered search and selection
"""
from .candidate import CandidateStatus, ResolutionCandidate
from .candidate_board import CandidateBoard
from .session_manager import (
    NO_MATCH_MESSAGE,
    UNAVAILABLE_MESSAGE,
    ResolutionJob,
    ResolutionSessionManager,
)
from .correction_flow import CorrectionFlow, Suggestion, SuggestionResult

__all__ = [
    "CandidateStatus",
    "ResolutionCandidate",
    "CandidateBoard",
    "ResolutionSessionManager",
    "ResolutionJob",
    "NO_MATCH_MESSAGE",
    "UNAVAILABLE_MESSAGE",
    "CorrectionFlow",
    "Suggestion",
    "SuggestionResult",
]
