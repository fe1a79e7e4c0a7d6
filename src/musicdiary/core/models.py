"""Core data models for MusicDiary.

A MemoryRecord is one diary entry: a remembered song, the mood it was heard
in, and the AI reflection produced for it. Records are persisted as a JSON
array with camelCase keys, so every model here serializes by alias.

Only ``userFeedback`` may change after creation. Records are frozen; the
store replaces a record with ``with_feedback()`` instead of mutating it.

Example:
    >>> record = MemoryRecord(
    ...     id="1718000000000",
    ...     moodScore=30,
    ...     moodTags=("Nostalgic",),
    ...     timestamp=date_to_timestamp(date(2024, 6, 10)),
    ...     song=SongInput(title="Fly Me to the Moon", artist="Sample Artist"),
    ...     analysis=AnalysisResult(
    ...         inferredEmotion="Quiet resolve",
    ...         analysisText="...",
    ...         moodColor="#3b82f6",
    ...         imagePrompt="soft blue waves",
    ...     ),
    ... )
    >>> record.to_json_dict()["moodScore"]
    30
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

MOOD_MIN = -50
MOOD_MAX = 50
MAX_MOOD_TAGS = 3

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# =============================================================================
# Enums
# =============================================================================


class Language(str, Enum):
    """Language a record was written and analyzed in."""

    JA = "ja"
    EN = "en"


class Feedback(str, Enum):
    """The user's verdict on the inferred emotion.

    Unset feedback is represented by ``None`` on the record.
    """

    CORRECT = "correct"
    INCORRECT = "incorrect"


# =============================================================================
# Helpers
# =============================================================================


def date_to_timestamp(value: date) -> int:
    """Epoch milliseconds for local midnight of ``value``."""
    midnight = datetime(value.year, value.month, value.day)
    return int(midnight.timestamp() * 1000)


def timestamp_to_datetime(timestamp: int) -> datetime:
    """Local datetime for an epoch-milliseconds timestamp."""
    return datetime.fromtimestamp(timestamp / 1000)


# =============================================================================
# Models
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SongInput(_CamelModel):
    """The song the user remembers."""

    title: str
    artist: str

    def is_complete(self) -> bool:
        """Both title and artist carry non-blank text."""
        return bool(self.title.strip()) and bool(self.artist.strip())


class AnalysisResult(_CamelModel):
    """AI-generated reflection for a record.

    Attributes:
        inferred_emotion: One-phrase emotion label.
        analysis_text: Empathetic message to the user.
        mood_color: Hex color representing the emotion.
        image_prompt: English prompt for the abstract artwork.
    """

    inferred_emotion: str = Field(alias="inferredEmotion")
    analysis_text: str = Field(alias="analysisText")
    mood_color: str = Field(alias="moodColor")
    image_prompt: str = Field(alias="imagePrompt")

    @field_validator("mood_color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        v = v.strip()
        if not _HEX_COLOR.match(v):
            raise ValueError(f"moodColor must be a hex color, got {v!r}")
        return v


def _check_tags(tags: Sequence[str]) -> Sequence[str]:
    if len(tags) > MAX_MOOD_TAGS:
        raise ValueError(f"At most {MAX_MOOD_TAGS} mood tags allowed, got {len(tags)}")
    if len(set(tags)) != len(tags):
        raise ValueError("Mood tags must be distinct")
    return tags


class MemoryDraft(BaseModel):
    """Everything the caller supplies to create a record.

    The store assigns the id and the initial (unset) feedback.
    """

    content: str = ""
    mood_score: int = Field(default=0, ge=MOOD_MIN, le=MOOD_MAX)
    mood_tags: list[str] = Field(default_factory=list)
    record_date: date
    song: SongInput
    analysis: AnalysisResult
    image_url: str = ""
    language: Language = Language.JA

    @field_validator("mood_tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)


class MemoryRecord(_CamelModel):
    """One saved diary entry."""

    id: str
    content: str = ""
    mood_score: int = Field(alias="moodScore", ge=MOOD_MIN, le=MOOD_MAX)
    mood_tags: tuple[str, ...] = Field(default=(), alias="moodTags")
    timestamp: int
    song: SongInput
    analysis: AnalysisResult
    image_url: str | None = Field(default=None, alias="imageUrl")
    user_feedback: Feedback | None = Field(default=None, alias="userFeedback")
    language: Language | None = None

    @field_validator("mood_tags")
    @classmethod
    def validate_tags(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _check_tags(v)

    @property
    def recorded_at(self) -> datetime:
        """Local datetime of the user-chosen date."""
        return timestamp_to_datetime(self.timestamp)

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    def with_feedback(self, is_correct: bool) -> "MemoryRecord":
        """Return a copy with ``userFeedback`` set; nothing else changes."""
        feedback = Feedback.CORRECT if is_correct else Feedback.INCORRECT
        return self.model_copy(update={"user_feedback": feedback})

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
