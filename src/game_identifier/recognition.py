"""
Recognizer payload parsing.

The vision recognizer answers with JSON shaped like::

    {"games": [{"title": "...", "confidence": "high|medium|low", "notes": "..."}],
     "comments": "..."}

Only the titles matter for resolution; confidence and notes are carried along
for display.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import RecognizerPayloadError

logger = logging.getLogger(__name__)


class RecognizedGame(BaseModel):
    title: str = Field(default="", description="Published title as read from the box")
    confidence: str = Field(default="unknown", description="Recognizer confidence label")
    notes: str = Field(default="", description="Edition or other remarks")

    @field_validator("title", "confidence", "notes", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()


class RecognizerPayload(BaseModel):
    games: List[RecognizedGame] = Field(default_factory=list)
    comments: Optional[str] = None


def parse_recognizer_payload(payload: Union[str, bytes, Dict[str, Any]]) -> RecognizerPayload:
    """
    Validate a recognizer response and clean up its game list.

    Entries without a title are dropped; repeated titles are removed
    case-insensitively, keeping the first occurrence.

    :param payload: Raw JSON text or an already decoded dict
    :return: RecognizerPayload with unique titles
    :raises: RecognizerPayloadError if the payload is empty or malformed
    """
    if isinstance(payload, (str, bytes)):
        if not payload or not payload.strip():
            raise RecognizerPayloadError("Recognizer response was empty. Please try again.")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise RecognizerPayloadError(
                "Recognizer returned an unreadable response. Please retry."
            ) from e

    if not isinstance(payload, dict):
        raise RecognizerPayloadError(
            f"Recognizer response must be a JSON object, got {type(payload).__name__}"
        )

    try:
        parsed = RecognizerPayload.model_validate(payload)
    except ValidationError as e:
        raise RecognizerPayloadError(f"Recognizer response has an unexpected shape: {e}") from e

    seen = set()
    unique: List[RecognizedGame] = []
    for game in parsed.games:
        if not game.title:
            continue
        key = game.title.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(game)

    if len(unique) != len(parsed.games):
        logger.debug(f"Dropped {len(parsed.games) - len(unique)} empty or repeated titles")

    return RecognizerPayload(games=unique, comments=parsed.comments)
