"""Core domain models.

Every component exchanges these types. Pydantic is used for validation and
serialisation at the API boundary; status mutation deliberately goes around
validation (see status.py) so that generated payloads pass through as-is.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field

Emotion = Literal["happy", "sad", "surprised", "angry", "thinking", "default"]

EMOTIONS: tuple[str, ...] = ("happy", "sad", "surprised", "angry", "thinking", "default")

Role = Literal["user", "assistant"]

Sender = Literal["user", "john", "system"]

# Vitals are advisory 0–100 values; generated payloads are not type-checked.
Vital = Union[int, float, str]


def normalize_emotion(value: Any) -> str:
    """Lower-case a candidate emotion; anything unknown becomes "default"."""
    if isinstance(value, str) and value.strip().lower() in EMOTIONS:
        return value.strip().lower()
    return "default"


class StatusRecord(BaseModel):
    """John's avatar/world status shown in the side panel."""

    emotion: Emotion = "default"
    species: str = "Human"
    location: str = "Home"
    goal: str = "Relaxing"
    mood: str = "Content"
    energy: Vital = 80
    happiness: Vital = 70
    social: Vital = 60


STRING_FIELDS: tuple[str, ...] = ("species", "location", "goal", "mood")
VITAL_FIELDS: tuple[str, ...] = ("energy", "happiness", "social")


class Turn(BaseModel):
    """One message exchanged with the persona, content kept raw (tags included)."""

    role: Role
    content: str


class ParseResult(BaseModel):
    """Outcome of splitting a generated reply into display text and status."""

    display_text: str
    emotion: Emotion = "default"
    status_partial: dict[str, Any] | None = None
    status_error: str | None = None  # set on a recoverable parse failure


class ImportFailure(BaseModel):
    """Returned by the transcript codec when text is not a transcript."""

    reason: str


class DisplayMessage(BaseModel):
    """A rendered chat bubble."""

    sender: Sender
    text: str
    timestamp: str = ""
    is_error: bool = False


class ExpressionView(BaseModel):
    """What the avatar layer needs to show an emotion."""

    emotion: Emotion
    icon: str
    face: dict[str, float]
    head_rotation: dict[str, float]


# ---------------------------------------------------------------------------
# Events emitted by the conversation controller
# ---------------------------------------------------------------------------

class MessageReady(BaseModel):
    kind: Literal["message_ready"] = "message_ready"
    message: DisplayMessage


class StatusChanged(BaseModel):
    kind: Literal["status_changed"] = "status_changed"
    status: StatusRecord


class EmotionChanged(BaseModel):
    kind: Literal["emotion_changed"] = "emotion_changed"
    expression: ExpressionView


class PendingChanged(BaseModel):
    """Typing indicator on/off."""

    kind: Literal["pending_changed"] = "pending_changed"
    pending: bool


class TranscriptReplaced(BaseModel):
    kind: Literal["transcript_replaced"] = "transcript_replaced"
    messages: list[DisplayMessage] = Field(default_factory=list)


class MessageEdited(BaseModel):
    """A persona bubble was corrected by hand; history is unchanged."""

    kind: Literal["message_edited"] = "message_edited"
    index: int
    message: DisplayMessage


class Cleared(BaseModel):
    kind: Literal["cleared"] = "cleared"


Event = Union[
    MessageReady,
    StatusChanged,
    EmotionChanged,
    PendingChanged,
    TranscriptReplaced,
    MessageEdited,
    Cleared,
]
