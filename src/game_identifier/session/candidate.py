"""
Resolution candidate and its lifecycle.

A candidate is one identification attempt for one recognized title. It is
immutable: every state change returns a new instance, so the board can swap
it in with a single assignment.
"""
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import InvalidTransitionError
from ..models import CatalogEntry, GameDetails
from ..resolution.match_types import MatchType


class CandidateStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    MATCHED = "matched"
    NO_MATCH = "no_match"
    ERROR = "error"


# Automatic pipeline transitions. Manual selection is handled separately.
_TRANSITIONS = {
    CandidateStatus.IDLE: {CandidateStatus.LOADING},
    CandidateStatus.LOADING: {
        CandidateStatus.MATCHED,
        CandidateStatus.NO_MATCH,
        CandidateStatus.ERROR,
    },
    CandidateStatus.NO_MATCH: {CandidateStatus.LOADING},
    CandidateStatus.ERROR: {CandidateStatus.LOADING},
    CandidateStatus.MATCHED: set(),
}

_NEEDS_MESSAGE = {CandidateStatus.NO_MATCH, CandidateStatus.ERROR}


@dataclass(frozen=True)
class ResolutionCandidate:
    """
    One recognized title on its way to a catalog entry.

    Attributes:
        id: Unique id for this capture attempt
        raw_title: Title as supplied by the recognizer or the user
        session_key: Session that created the candidate (reference only)
        status: Lifecycle state
        resolved_entry: Catalog entry, present iff status is matched
        error_message: User-facing message, present iff no_match or error
        searched_term: Query last searched, kept for the correction flow
    """
    id: str
    raw_title: str
    session_key: str
    status: CandidateStatus = CandidateStatus.IDLE
    resolved_entry: Optional[CatalogEntry] = None
    match_type: Optional[MatchType] = None
    details: Optional[GameDetails] = None
    error_message: Optional[str] = None
    searched_term: Optional[str] = None
    confidence_label: str = "unknown"
    notes: str = ""
    origin: str = "recognizer"
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        """Validate the status/field invariants."""
        if (self.resolved_entry is not None) != (self.status == CandidateStatus.MATCHED):
            raise ValueError(
                f"resolved_entry must be set exactly when status is matched (status={self.status.value})"
            )
        if bool(self.error_message) != (self.status in _NEEDS_MESSAGE):
            raise ValueError(
                f"error_message must be set exactly when status is no_match or error (status={self.status.value})"
            )

    # ----------------------------
    # Transitions
    # ----------------------------
    def begin_loading(self) -> "ResolutionCandidate":
        return self._transition(
            CandidateStatus.LOADING,
            error_message=None,
        )

    def resolve(
        self,
        entry: CatalogEntry,
        match_type: Optional[MatchType] = None,
        details: Optional[GameDetails] = None,
    ) -> "ResolutionCandidate":
        return self._transition(
            CandidateStatus.MATCHED,
            resolved_entry=entry,
            match_type=match_type,
            details=details,
            error_message=None,
        )

    def mark_no_match(self, searched_term: str, message: str) -> "ResolutionCandidate":
        return self._transition(
            CandidateStatus.NO_MATCH,
            searched_term=searched_term,
            error_message=message,
        )

    def mark_error(self, message: str, searched_term: Optional[str] = None) -> "ResolutionCandidate":
        return self._transition(
            CandidateStatus.ERROR,
            searched_term=searched_term or self.searched_term,
            error_message=message,
        )

    def select(
        self,
        entry: CatalogEntry,
        details: Optional[GameDetails] = None,
        match_type: Optional[MatchType] = None,
    ) -> "ResolutionCandidate":
        """
        Apply a user-chosen entry from any state.

        Recognizer metadata (confidence, notes, origin) is kept.
        """
        return replace(
            self,
            status=CandidateStatus.MATCHED,
            resolved_entry=entry,
            match_type=match_type,
            details=details,
            error_message=None,
        )

    def can_transition_to(self, status: CandidateStatus) -> bool:
        return status in _TRANSITIONS[self.status]

    def _transition(self, status: CandidateStatus, **changes: Any) -> "ResolutionCandidate":
        if not self.can_transition_to(status):
            raise InvalidTransitionError(
                f"Candidate {self.id} cannot move from {self.status.value} to {status.value}"
            )
        if status != CandidateStatus.MATCHED:
            changes.setdefault("resolved_entry", None)
            changes.setdefault("match_type", None)
            changes.setdefault("details", None)
        return replace(self, status=status, **changes)

    # ----------------------------
    # Views
    # ----------------------------
    @property
    def is_matched(self) -> bool:
        return self.status == CandidateStatus.MATCHED

    @property
    def is_settled(self) -> bool:
        """The lookup has finished, successfully or not."""
        return self.status in (
            CandidateStatus.MATCHED,
            CandidateStatus.NO_MATCH,
            CandidateStatus.ERROR,
        )

    @property
    def needs_correction(self) -> bool:
        return self.status in _NEEDS_MESSAGE

    @property
    def display_title(self) -> str:
        if self.details and self.details.name:
            return self.details.name
        if self.resolved_entry:
            return self.resolved_entry.name
        return self.raw_title

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the UI layer."""
        result: Dict[str, Any] = {
            "id": self.id,
            "raw_title": self.raw_title,
            "session_key": self.session_key,
            "status": self.status.value,
            "display_title": self.display_title,
            "confidence": self.confidence_label,
            "origin": self.origin,
        }

        if self.notes:
            result["notes"] = self.notes

        if self.resolved_entry:
            result["resolved"] = {
                "id": self.resolved_entry.id,
                "name": self.resolved_entry.name,
                "year_published": self.resolved_entry.year_published,
                "rank": self.resolved_entry.rank,
                "match_type": self.match_type.value if self.match_type else None,
            }

        if self.details:
            result["details"] = {
                "thumbnail": self.details.thumbnail,
                "image": self.details.image,
                "min_players": self.details.min_players,
                "max_players": self.details.max_players,
                "playing_time": self.details.playing_time,
            }

        if self.error_message:
            result["error_message"] = self.error_message

        if self.searched_term:
            result["searched_term"] = self.searched_term

        return result
